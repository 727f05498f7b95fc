import json
import logging
from datetime import datetime
from typing import List, Optional

# ReportLab Imports
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.styles import getSampleStyleSheet

from backoffice.models.expense import Expense, ExpenseSummary
from backoffice.utils.clock import utcnow
from backoffice.utils.format import format_currency
from backoffice.workflow.decision import decision_workflow

logger = logging.getLogger(__name__)

# Built-in Helvetica has no Naira glyph
PDF_CURRENCY = "NGN "

class ExpenseReportTool:
    """Exports the expense list with its summary as PDF or JSON."""

    def generate(self, expenses: List[Expense], format: str = "PDF", path: Optional[str] = None,
                 now: Optional[datetime] = None) -> str:
        now = now or utcnow()
        summary = decision_workflow.generate_expense_summary(expenses, now=now)
        stamp = now.strftime("%Y%m%d_%H%M%S")

        if format.upper() == "PDF":
            filename = path or f"expense_report_{stamp}.pdf"
            self._create_pdf(filename, expenses, summary, now)
        elif format.upper() == "JSON":
            filename = path or f"expense_report_{stamp}.json"
            with open(filename, "w", encoding="utf-8") as f:
                json.dump({
                    "generatedAt": now.isoformat(),
                    "summary": summary.to_wire(),
                    "items": [e.to_wire() for e in expenses],
                }, f, indent=2, ensure_ascii=False)
        else:
            raise ValueError(f"Unsupported format: {format}")

        logger.info(f"Expense report written to {filename} ({len(expenses)} items)")
        return filename

    def _create_pdf(self, filename: str, expenses: List[Expense], summary: ExpenseSummary, now: datetime):
        doc = SimpleDocTemplate(filename, pagesize=A4)
        styles = getSampleStyleSheet()
        story = []

        story.append(Paragraph("Expense Report", styles['Title']))
        story.append(Paragraph(f"Generated {now.strftime('%Y-%m-%d %H:%M')} UTC", styles['Normal']))
        story.append(Spacer(1, 12))

        totals = [
            ["Total", "Pending", "Approved", "Rejected", "Paid", "Amount"],
            [
                str(summary.total_expenses),
                str(summary.pending_expenses),
                str(summary.approved_expenses),
                str(summary.rejected_expenses),
                str(summary.paid_expenses),
                format_currency(summary.total_amount, PDF_CURRENCY),
            ],
        ]
        t = Table(totals)
        t.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
        ]))
        story.append(t)
        story.append(Spacer(1, 12))

        data = [["ID", "Title", "Requester", "Department", "Amount", "Status"]]
        for e in expenses:
            title = e.title[:40] + ("..." if len(e.title) > 40 else "")
            data.append([
                e.id,
                title,
                e.requested_by.name,
                e.department,
                format_currency(e.amount, PDF_CURRENCY),
                e.status.value,
            ])

        t = Table(data, colWidths=[70, 150, 90, 90, 80, 55], repeatRows=1)
        t.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('ALIGN', (4, 1), (4, -1), 'RIGHT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
            ('BACKGROUND', (0, 1), (-1, -1), colors.beige),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
        ]))

        story.append(t)
        doc.build(story)

report_tool = ExpenseReportTool()
