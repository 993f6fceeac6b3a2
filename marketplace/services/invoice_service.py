"""Invoice Service - PDF invoices for customer orders."""
from io import BytesIO
from typing import Dict, Any, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from sqlalchemy.orm import Session

from marketplace.models import OrderStatus
from marketplace.services.order_service import get_order
from marketplace.utils.formatters import format_price, format_date, DEFAULT_COUNTRY

PAYMENT_LABELS = {
    'cod': 'Cash on Delivery',
    'bank': 'Bank Transfer',
    'jazzcash': 'JazzCash',
    'easypaisa': 'EasyPaisa',
}


def order_country(order) -> str:
    """Currency country of an order, taken from the seller of its first line."""
    for item in order.items:
        if item.product is not None and item.product.company is not None:
            return item.product.company.country
        if item.animal is not None:
            return item.animal.country
    return DEFAULT_COUNTRY


def _item_label(item) -> str:
    if item.animal is not None:
        return item.animal.title
    name = item.product.name if item.product else f'Product #{item.product_id}'
    if item.variant is not None and item.variant.packing_volume:
        name = f'{name} ({item.variant.packing_volume})'
    return name


def _render_invoice_pdf(order, business_info: Dict[str, Any]) -> BytesIO:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch
    )

    elements = []
    styles = getSampleStyleSheet()
    country = order_country(order)

    title_style = ParagraphStyle(
        'InvoiceTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    header_style = ParagraphStyle(
        'InvoiceHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Title and business header
    elements.append(Paragraph("INVOICE", title_style))

    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{business_info['name']}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(business_info['address'], header_style))

    contact_parts = []
    if business_info.get('phone'):
        contact_parts.append(f"Tel: {business_info['phone']}")
    if business_info.get('email'):
        contact_parts.append(f"Email: {business_info['email']}")
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Order and shipping block
    customer = order.user
    info_data = [
        ['Order No:', f'#{order.id}'],
        ['Date:', format_date(order.created_at)],
        ['Status:', OrderStatus(order.status).value.capitalize()],
        ['Payment:', PAYMENT_LABELS.get(order.payment_method, order.payment_method)],
    ]
    if customer is not None:
        info_data.append(['Customer:', customer.name or customer.email])
    info_data.append(['Ship to:', ', '.join(p for p in (order.address, order.city, order.province) if p)])
    info_data.append(['Contact:', order.shipping_address])

    info_table = Table(info_data, colWidths=[1.5*inch, 5.2*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Items table
    table_data = [['Item', 'Qty', 'Unit Price', 'Discount', 'Subtotal']]
    for item in order.items:
        discount = f'{item.discount_percentage}%' if item.discount_percentage else '-'
        table_data.append([
            _item_label(item),
            str(item.quantity),
            format_price(item.price, country),
            discount,
            format_price(item.line_total, country),
        ])

    items_table = Table(table_data, colWidths=[3*inch, 0.6*inch, 1.1*inch, 0.8*inch, 1.2*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('ALIGN', (1, 1), (1, -1), 'CENTER'),
        ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Shipment charges and total
    totals_table = Table([
        ['Shipment charges:', format_price(order.shipment_charges, country)],
        ['TOTAL:', format_price(order.total, country)],
    ], colWidths=[5.5*inch, 1.2*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, 0), 10),
        ('FONTNAME', (0, 1), (-1, 1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 1), (-1, 1), 14),
        ('TEXTCOLOR', (0, 1), (-1, 1), colors.HexColor('#27AE60')),
        ('BACKGROUND', (0, 1), (-1, 1), colors.HexColor('#E8F8F5')),
        ('BOX', (0, 1), (-1, 1), 2, colors.HexColor('#27AE60')),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 0.4*inch))

    footer_style = ParagraphStyle('Footer', parent=styles['Normal'], fontSize=9,
                                  textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER)
    elements.append(Paragraph("Thank you for your order.", footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def generate_order_invoice_pdf(session: Session, order_id: int, user_id: Optional[int] = None,
                               business_info: Optional[Dict[str, Any]] = None) -> BytesIO:
    """
    Render the invoice of an order.

    With user_id (customer callers) another customer's order is reported as
    not found.
    """
    order = get_order(session, order_id, user_id=user_id)
    return _render_invoice_pdf(order, business_info or {})
