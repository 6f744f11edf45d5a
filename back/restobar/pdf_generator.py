"""
Receipt PDF Generator

Printable customer receipts for paid orders using ReportLab.
"""

from datetime import datetime, timezone
from decimal import Decimal
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A5
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
    HRFlowable,
)


# Color scheme (matching app design)
PRIMARY_COLOR = colors.HexColor("#c45d35")  # Warm terracotta
DARK_COLOR = colors.HexColor("#1f2937")  # Dark gray
MUTED_COLOR = colors.HexColor("#6b7280")  # Muted gray
BORDER_COLOR = colors.HexColor("#e5e7eb")  # Light border
SUCCESS_COLOR = colors.HexColor("#059669")  # Green for totals


def format_amount(amount: Decimal | str | int, currency: str) -> str:
    return f"{Decimal(str(amount)):,.2f} {currency}".strip()


def _format_date(value) -> str:
    if isinstance(value, str) and value:
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return value
    if isinstance(value, datetime):
        return value.strftime('%d/%m/%Y %H:%M')
    return ''


def generate_receipt_pdf(receipt: dict, currency: str = "FCFA") -> BytesIO:
    """
    Generate a receipt PDF for a paid order.

    Args:
        receipt: Receipt data as built for GET /orders/{id}/receipt
                 (order_id, customer_name, table_number, items, total,
                 payment_method, payment_date, restaurant_*).
        currency: Currency label printed after every amount.

    Returns:
        BytesIO buffer containing the PDF
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A5,
        rightMargin=12*mm,
        leftMargin=12*mm,
        topMargin=12*mm,
        bottomMargin=12*mm,
    )

    styles = getSampleStyleSheet()

    restaurant_style = ParagraphStyle(
        'Restaurant',
        parent=styles['Heading1'],
        fontSize=18,
        textColor=PRIMARY_COLOR,
        alignment=TA_CENTER,
        spaceAfter=2*mm,
    )

    address_style = ParagraphStyle(
        'Address',
        parent=styles['Normal'],
        fontSize=9,
        textColor=MUTED_COLOR,
        alignment=TA_CENTER,
        leading=12,
    )

    section_header_style = ParagraphStyle(
        'SectionHeader',
        parent=styles['Normal'],
        fontSize=9,
        textColor=MUTED_COLOR,
        fontName='Helvetica-Bold',
        spaceBefore=5*mm,
        spaceAfter=2*mm,
    )

    normal_style = ParagraphStyle(
        'NormalText',
        parent=styles['Normal'],
        fontSize=9,
        textColor=DARK_COLOR,
        leading=12,
    )

    totals_style = ParagraphStyle(
        'Totals',
        parent=styles['Normal'],
        fontSize=10,
        textColor=DARK_COLOR,
        alignment=TA_RIGHT,
    )

    total_bold_style = ParagraphStyle(
        'TotalBold',
        parent=styles['Normal'],
        fontSize=12,
        textColor=SUCCESS_COLOR,
        fontName='Helvetica-Bold',
        alignment=TA_RIGHT,
    )

    footer_style = ParagraphStyle(
        'Footer',
        parent=styles['Normal'],
        fontSize=8,
        textColor=MUTED_COLOR,
        alignment=TA_CENTER,
    )

    story = []

    # ===== HEADER =====
    story.append(Paragraph(receipt.get('restaurant_name') or 'RestoBar', restaurant_style))
    contact = [c for c in (receipt.get('restaurant_address'), receipt.get('restaurant_phone')) if c]
    if contact:
        story.append(Paragraph('<br/>'.join(contact), address_style))
    story.append(Spacer(1, 4*mm))
    story.append(HRFlowable(width="100%", thickness=1, color=BORDER_COLOR))

    # ===== ORDER DETAILS =====
    story.append(Paragraph("RECEIPT", section_header_style))
    details = [
        f"<b>Order #</b> {receipt.get('order_id', '')}",
        f"<b>Date:</b> {_format_date(receipt.get('payment_date'))}",
        f"<b>Customer:</b> {receipt.get('customer_name') or 'Customer'}",
    ]
    if receipt.get('table_number') is not None:
        details.append(f"<b>Table:</b> {receipt['table_number']}")
    if receipt.get('customer_phone'):
        details.append(f"<b>Phone:</b> {receipt['customer_phone']}")
    story.append(Paragraph('<br/>'.join(details), normal_style))

    # ===== ITEMS TABLE =====
    story.append(Paragraph("ITEMS", section_header_style))

    table_data = [[
        Paragraph("<b>Item</b>", normal_style),
        Paragraph("<b>Qty</b>", normal_style),
        Paragraph("<b>Price</b>", normal_style),
        Paragraph("<b>Total</b>", normal_style),
    ]]

    items = receipt.get('items', [])
    for item in items:
        table_data.append([
            Paragraph(item.get('name', '-'), normal_style),
            Paragraph(str(item.get('quantity', 0)), normal_style),
            Paragraph(format_amount(item.get('price', 0), currency), normal_style),
            Paragraph(format_amount(item.get('total', 0), currency), normal_style),
        ])

    if not items:
        table_data.append([Paragraph("-", normal_style), "", "", ""])

    items_table = Table(
        table_data,
        colWidths=[52*mm, 14*mm, 28*mm, 30*mm],
        repeatRows=1,
    )
    items_table.setStyle(TableStyle([
        # Header row
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#f9fafb")),
        ('TEXTCOLOR', (0, 0), (-1, 0), DARK_COLOR),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 6),
        ('TOPPADDING', (0, 0), (-1, 0), 6),

        # Data rows
        ('TOPPADDING', (0, 1), (-1, -1), 4),
        ('BOTTOMPADDING', (0, 1), (-1, -1), 4),

        # Alignment
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),

        # Borders
        ('LINEBELOW', (0, 0), (-1, 0), 1, BORDER_COLOR),
        ('LINEBELOW', (0, 1), (-1, -2), 0.5, BORDER_COLOR),
        ('LINEBELOW', (0, -1), (-1, -1), 1, BORDER_COLOR),
    ]))
    story.append(items_table)

    # ===== TOTALS =====
    story.append(Spacer(1, 4*mm))
    totals_data = [
        ["", Paragraph("Subtotal:", totals_style),
         Paragraph(format_amount(receipt.get('subtotal', 0), currency), totals_style)],
        ["", Paragraph("<b>TOTAL:</b>", totals_style),
         Paragraph(format_amount(receipt.get('total', 0), currency), total_bold_style)],
        ["", Paragraph("Payment:", totals_style),
         Paragraph(str(receipt.get('payment_method') or 'cash'), totals_style)],
    ]
    totals_table = Table(totals_data, colWidths=[52*mm, 42*mm, 30*mm])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('TOPPADDING', (0, 0), (-1, -1), 2),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
    ]))
    story.append(totals_table)

    # ===== FOOTER =====
    story.append(Spacer(1, 10*mm))
    story.append(HRFlowable(width="100%", thickness=0.5, color=BORDER_COLOR))
    story.append(Spacer(1, 3*mm))
    story.append(Paragraph("Thank you for your visit!", footer_style))
    generated_at = datetime.now(timezone.utc).strftime('%d/%m/%Y %H:%M UTC')
    story.append(Paragraph(f"Printed on {generated_at}", footer_style))

    doc.build(story)
    buffer.seek(0)
    return buffer
