"""
Excel report generator for fee reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from datetime import datetime
from pathlib import Path
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..models.transaction import ImportReport
from ..config import FeeReconConfig
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
PARTIAL_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: FeeReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.sheet_config = config.output.sheets

    def generate_report(self, report: ImportReport, output_path: Path) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            report: Import report of one run
            output_path: Path for output file

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config
        if sheets.summary.enabled:
            self._create_summary_sheet(wb, report)
        if sheets.matches.enabled:
            self._create_matches_sheet(wb, report)
        if sheets.unresolved.enabled:
            self._create_unresolved_sheet(wb, report)
        if sheets.unapplied.enabled:
            self._create_unapplied_sheet(wb, report)
        if sheets.ignored.enabled:
            self._create_ignored_sheet(wb, report)
        if sheets.audit_trail.enabled:
            self._create_audit_trail_sheet(wb, report)

        # A workbook needs at least one sheet
        if not wb.sheetnames:
            wb.create_sheet(sheets.summary.name)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            logger.error(f"Failed to save report: {e}")
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(self, wb: Workbook, report: ImportReport) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        ws["A1"] = "Fee Payment Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        ws["A3"] = "File Information"
        ws["A3"].font = Font(bold=True)

        period = "-"
        if report.period_start and report.period_end:
            period = f"{report.period_start} to {report.period_end}"

        file_info = [
            ("Bank File:", report.source_name),
            ("Processed At:", report.processed_at.strftime("%Y-%m-%d %H:%M:%S")),
            ("Booking Period:", period),
        ]

        row = 4
        for label, value in file_info:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = str(value)
            row += 1

        row += 1
        ws[f"A{row}"] = "Transaction Counts"
        ws[f"A{row}"].font = Font(bold=True)
        row += 1

        count_data = [
            ("Imported Transactions:", len(report.transactions)),
            ("Skipped Rows:", report.skipped_row_count),
            ("Matched Transactions:", report.matched_count),
            ("Payment Matches:", len(report.matches)),
            ("Settled Obligations:", report.settled_obligation_count),
            ("Late Payments:", len(report.late_matches)),
            ("Unresolved Transactions:", report.unmatched_count),
            ("Unapplied Credits:", len(report.unapplied_credits)),
            ("Ignored Transactions:", len(report.ignored)),
            ("Not Processed:", len(report.not_processed)),
        ]
        for label, value in count_data:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value
            row += 1

        row += 1
        ws[f"A{row}"] = "Match Rate:"
        ws[f"B{row}"] = f"{report.match_rate:.1f}%"
        row += 1
        ws[f"A{row}"] = "Total Applied:"
        ws[f"B{row}"] = f"{report.total_applied:,.2f}"
        row += 1
        ws[f"A{row}"] = "Total Unapplied:"
        ws[f"B{row}"] = f"{report.total_unapplied:,.2f}"
        row += 2

        ws[f"A{row}"] = "Unresolved by Reason"
        ws[f"A{row}"].font = Font(bold=True)
        row += 1
        for reason, count in report.unresolved_by_reason.items():
            ws[f"A{row}"] = reason
            ws[f"B{row}"] = count
            row += 1

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _write_headers(self, ws: Worksheet, headers: list[str], row: int = 1) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _create_matches_sheet(self, wb: Workbook, report: ImportReport) -> None:
        """Create the payment matches sheet."""
        ws = wb.create_sheet(self.sheet_config.matches.name)

        self._write_headers(
            ws,
            [
                "Booking Date",
                "Payer",
                "Description",
                "Transaction Amount",
                "Child ID",
                "Obligation ID",
                "Fee Type",
                "Period",
                "Applied Amount",
                "Settled",
                "Late",
                "Basis",
                "Confidence",
            ],
        )

        for row_num, match in enumerate(report.matches, start=2):
            txn = match.transaction
            obligation = match.obligation
            row_data = [
                txn.booking_date,
                txn.payer_name or "",
                txn.description or "",
                float(txn.amount),
                obligation.child_id,
                obligation.id,
                obligation.fee_type.value,
                obligation.period_label,
                float(match.amount),
                "yes" if match.settles_obligation else "partial",
                "yes" if match.late else "",
                match.basis.value,
                f"{match.confidence:.2f}",
            ]

            fill = MATCH_FILL if match.settles_obligation else PARTIAL_FILL
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = fill

        self._auto_fit_columns(ws)

    def _create_unresolved_sheet(self, wb: Workbook, report: ImportReport) -> None:
        """Create the sheet of transactions left for manual review."""
        ws = wb.create_sheet(self.sheet_config.unresolved.name)

        self._write_headers(
            ws,
            [
                "Booking Date",
                "Payer",
                "Payer Account",
                "Description",
                "Amount",
                "Reason",
                "Identified Child",
                "Basis",
                "Confidence",
            ],
        )

        for row_num, item in enumerate(report.unresolved, start=2):
            txn = item.transaction
            candidate = item.candidate
            row_data = [
                txn.booking_date,
                txn.payer_name or "",
                txn.payer_account or "",
                txn.description or "",
                float(txn.amount),
                item.reason.value,
                candidate.child.full_name if candidate else "",
                candidate.basis.value if candidate else "",
                f"{candidate.confidence:.2f}" if candidate else "",
            ]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = UNMATCHED_FILL

        self._auto_fit_columns(ws)

    def _create_unapplied_sheet(self, wb: Workbook, report: ImportReport) -> None:
        """Create the sheet of overpayments without an open obligation."""
        ws = wb.create_sheet(self.sheet_config.unapplied.name)

        self._write_headers(
            ws,
            ["Booking Date", "Payer", "Description", "Child", "Transaction Amount", "Unapplied"],
        )

        for row_num, credit in enumerate(report.unapplied_credits, start=2):
            txn = credit.transaction
            row_data = [
                txn.booking_date,
                txn.payer_name or "",
                txn.description or "",
                credit.child.full_name,
                float(txn.amount),
                float(credit.amount),
            ]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = PARTIAL_FILL

        self._auto_fit_columns(ws)

    def _create_ignored_sheet(self, wb: Workbook, report: ImportReport) -> None:
        """Create the sheet of transactions excluded before matching."""
        ws = wb.create_sheet(self.sheet_config.ignored.name)

        self._write_headers(
            ws, ["Booking Date", "Payer", "Payer Account", "Description", "Amount", "Reason"]
        )

        for row_num, item in enumerate(report.ignored, start=2):
            txn = item.transaction
            row_data = [
                txn.booking_date,
                txn.payer_name or "",
                txn.payer_account or "",
                txn.description or "",
                float(txn.amount),
                item.reason.value,
            ]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER

        self._auto_fit_columns(ws)

    def _create_audit_trail_sheet(self, wb: Workbook, report: ImportReport) -> None:
        """Create the audit trail sheet."""
        ws = wb.create_sheet(self.sheet_config.audit_trail.name)

        ws["A1"] = "Reconciliation Audit Trail"
        ws["A1"].font = Font(size=14, bold=True)

        audit_info = [
            ("Generated At:", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
            ("Config File:", report.config_file_used or "Default"),
            ("Processing Time:", f"{report.processing_time_seconds:.2f} seconds"),
            ("", ""),
            ("Skipped Rows:", ""),
        ]

        row = 3
        for label, value in audit_info:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value
            row += 1

        for reason, count in sorted(report.skipped_rows.items(), key=lambda kv: kv[0].value):
            ws[f"A{row}"] = f"  {reason.value}:"
            ws[f"B{row}"] = count
            row += 1

        row += 1
        ws[f"A{row}"] = "Match Log"
        ws[f"A{row}"].font = Font(bold=True)
        row += 1

        self._write_headers(
            ws,
            ["Timestamp", "Transaction ID", "Obligation ID", "Basis", "Confidence", "Amount"],
            row=row,
        )
        row += 1

        for match in report.matches:
            log_data = [
                match.matched_at.strftime("%Y-%m-%d %H:%M:%S"),
                match.transaction.id,
                match.obligation.id,
                match.basis.value,
                f"{match.confidence:.2f}",
                float(match.amount),
            ]

            for col, value in enumerate(log_data, start=1):
                ws.cell(row=row, column=col, value=value)
            row += 1

        self._auto_fit_columns(ws)

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = column_cells[0].column_letter

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            ws.column_dimensions[column].width = min(max_length + 2, 50)
