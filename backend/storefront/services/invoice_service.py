# Overview: Service-layer operations for invoices; renders an order as a PDF document.

from __future__ import annotations

import io

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from ..models import Order, User
from ..money import compute_subtotal, format_money, line_subtotal


MARGIN = 50
LINE_HEIGHT = 18

# x offset of each item table column
COL_PRODUCT = 50
COL_QTY = 250
COL_PRICE = 300
COL_SUBTOTAL = 370
RULE_END = 520


def invoice_filename(order: Order) -> str:
    return f"invoice-{order.id}.pdf"


def _money(value) -> str:
    return f"${format_money(value)}"


def render_invoice(order: Order, customer: User | None = None) -> bytes:
    """
    Single-page invoice: header, customer block, item table, totals.

    Items Total is re-summed from the stored lines; Grand Total is the stored
    order total.
    """
    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=letter)
    width, height = letter
    y = height - MARGIN

    pdf.setTitle(f"Invoice {order.id}")

    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawCentredString(width / 2, y, "Supermarket Invoice")
    y -= LINE_HEIGHT * 2

    created = order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else ""

    pdf.setFont("Helvetica", 12)
    pdf.drawString(MARGIN, y, f"Invoice #: {order.id}")
    y -= LINE_HEIGHT
    pdf.drawString(MARGIN, y, f"Date: {created}")
    y -= LINE_HEIGHT
    pdf.drawString(MARGIN, y, f"Customer: {customer.username if customer else 'N/A'}")
    y -= LINE_HEIGHT
    if customer and customer.email:
        pdf.drawString(MARGIN, y, f"Email: {customer.email}")
        y -= LINE_HEIGHT
    y -= LINE_HEIGHT

    pdf.drawString(MARGIN, y, "Items:")
    y -= LINE_HEIGHT

    pdf.drawString(COL_PRODUCT, y, "Product")
    pdf.drawString(COL_QTY, y, "Qty")
    pdf.drawString(COL_PRICE, y, "Price")
    pdf.drawString(COL_SUBTOTAL, y, "Subtotal")
    y -= LINE_HEIGHT / 2
    pdf.line(MARGIN, y, RULE_END, y)
    y -= LINE_HEIGHT

    for item in order.items:
        if y < MARGIN + LINE_HEIGHT * 4:
            pdf.showPage()
            pdf.setFont("Helvetica", 12)
            y = height - MARGIN
        pdf.drawString(COL_PRODUCT, y, item.product_name)
        pdf.drawString(COL_QTY, y, str(item.quantity))
        pdf.drawString(COL_PRICE, y, _money(item.price))
        pdf.drawString(COL_SUBTOTAL, y, _money(line_subtotal(item.price, item.quantity)))
        y -= LINE_HEIGHT

    items_total = compute_subtotal((i.price, i.quantity) for i in order.items)

    y -= LINE_HEIGHT
    pdf.drawString(MARGIN, y, f"Items Total: {_money(items_total)}")
    y -= LINE_HEIGHT
    pdf.drawString(MARGIN, y, f"Delivery Fee: {_money(order.delivery_fee)}")
    y -= LINE_HEIGHT
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawString(MARGIN, y, f"Grand Total: {_money(order.total)}")

    pdf.showPage()
    pdf.save()
    return buf.getvalue()
