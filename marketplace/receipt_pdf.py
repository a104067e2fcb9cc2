"""
Payment receipt PDF for a paid order.
Content: shop header, receipt number, dates, customer and delivery address,
rider, items table (SN, Item, Price, Qty, Total), delivery charge, grand total,
payment and order status.
"""
from decimal import Decimal
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas as pdf_canvas

SHOP_NAME = "Sam's Kitchen"


def _money(value):
    return f'Tk {Decimal(value or 0):.2f}'


def order_receipt_pdf_bytes(order, payment=None, title='Payment Receipt'):
    """
    PDF bytes for order's receipt. order should prefetch 'items'; payment is the
    completed Payment (its method and transaction id are printed when given).
    """
    buf = BytesIO()
    c = pdf_canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f'{title} #{order.id}')
    width, height = A4
    y = height - 40
    left = 50
    right_col = 350

    c.setFont('Helvetica-Bold', 14)
    c.drawString(left, y, SHOP_NAME)
    y -= 16
    c.setFont('Helvetica', 10)
    c.drawString(left, y, title)
    y -= 24

    c.setFont('Helvetica-Bold', 11)
    c.drawString(right_col, height - 40, f'Receipt: RCPT-{order.id:06d}')
    c.setFont('Helvetica', 9)
    if order.placed_at:
        c.drawString(right_col, height - 54, f'Placed: {order.placed_at.strftime("%Y-%m-%d %H:%M")}')
    if order.paid_at:
        c.drawString(right_col, height - 66, f'Paid: {order.paid_at.strftime("%Y-%m-%d %H:%M")}')

    c.setFont('Helvetica', 9)
    c.drawString(left, y, f'Customer: {order.customer_name or order.customer_email}')
    y -= 12
    c.drawString(left, y, f'Email: {order.customer_email}  |  Phone: {order.customer_phone}')
    y -= 12
    c.drawString(left, y, f'Deliver to: {order.region}, {order.thana}, {order.district}'[:95])
    y -= 12
    c.drawString(left, y, f'Rider: {order.assigned_rider_name or "-"}')
    y -= 12
    if payment is not None:
        c.drawString(left, y, f'Payment: {payment.method}  |  Transaction: {payment.transaction_id}'[:95])
        y -= 12
    y -= 10

    c.setFont('Helvetica-Bold', 9)
    c.drawString(left, y, 'SN')
    c.drawString(left + 30, y, 'Item')
    c.drawString(280, y, 'Price')
    c.drawString(340, y, 'Qty')
    c.drawString(400, y, 'Total')
    y -= 14
    c.setFont('Helvetica', 9)

    subtotal = Decimal('0')
    for sn, item in enumerate(order.items.all(), start=1):
        line_total = item.price * item.quantity
        subtotal += line_total
        c.drawString(left, y, str(sn))
        c.drawString(left + 30, y, (item.food_name or 'Item')[:40])
        c.drawString(280, y, _money(item.price))
        c.drawString(340, y, str(item.quantity))
        c.drawString(400, y, _money(line_total))
        y -= 12
        if y < 120:
            c.showPage()
            y = height - 40
            c.setFont('Helvetica', 9)

    y -= 8
    c.drawString(right_col, y, f'Subtotal: {_money(subtotal)}')
    y -= 12
    if order.delivery_charge:
        c.drawString(right_col, y, f'Delivery charge: {_money(order.delivery_charge)}')
        y -= 12
    c.setFont('Helvetica-Bold', 10)
    c.drawString(right_col, y, f'Grand Total: {_money(order.total)}')
    y -= 12
    c.setFont('Helvetica', 9)
    c.drawString(right_col, y, f'Payment: {order.payment_status}  |  Order: {order.status}')

    c.showPage()
    c.save()
    buf.seek(0)
    return buf.getvalue()
