from datetime import datetime, timezone
from html import escape

from shared.config.settings import SHOP_NAME

_STYLE = """
body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
.container { max-width: 600px; margin: 0 auto; }
.header { background-color: #000; color: white; padding: 20px; text-align: center; }
.content { padding: 20px; }
.footer { background-color: #f4f4f4; padding: 10px; text-align: center; font-size: 12px; }
table { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
th { background-color: #f4f4f4; text-align: left; padding: 10px; }
td { padding: 10px; border-bottom: 1px solid #eee; }
.totals td { border: none; }
"""


def _money(value) -> str:
    return f"${float(value):.2f}"


def _page(title: str, body: str) -> str:
    year = datetime.now(timezone.utc).year
    return f"""<!DOCTYPE html>
<html>
<head><style>{_STYLE}</style></head>
<body>
  <div class="container">
    <div class="header"><h1>{escape(title)}</h1></div>
    <div class="content">{body}</div>
    <div class="footer"><p>&copy; {year} {escape(SHOP_NAME)}. All rights reserved.</p></div>
  </div>
</body>
</html>"""


def _address_block(address: dict) -> str:
    if not address:
        return "<p>Not provided</p>"
    lines = [
        address.get("fullName", ""),
        address.get("street", ""),
        f"{address.get('city', '')}, {address.get('state', '')} {address.get('zipCode', '')}".strip(", "),
        address.get("country", ""),
    ]
    return "<p>" + "<br>".join(escape(line) for line in lines if line.strip()) + "</p>"


def render_order_confirmation(payload: dict) -> str:
    rows = []
    for item in payload.get("items", []):
        name = item.get("productName", "Product")
        if item.get("size"):
            name = f"{name} ({item['size']})"
        line_total = float(item.get("price", 0)) * int(item.get("quantity", 0))
        rows.append(
            f"<tr><td>{escape(name)}</td><td>{int(item.get('quantity', 0))}</td>"
            f"<td>{_money(item.get('price', 0))}</td><td>{_money(line_total)}</td></tr>"
        )
    if not rows:
        rows.append('<tr><td colspan="4" style="text-align: center;">No items in order</td></tr>')

    shipping = float(payload.get("shipping", 0))
    greeting = escape(payload.get("firstName") or "Valued Customer")
    body = f"""
      <p>Hi {greeting},</p>
      <p>Thank you for your order! We're processing it now and will ship it soon.</p>
      <h2>Order Details</h2>
      <p><strong>Order Number:</strong> {escape(payload.get("orderId", "N/A"))}</p>
      <table>
        <tr><th>Product</th><th>Quantity</th><th>Price</th><th>Total</th></tr>
        {''.join(rows)}
        <tr class="totals"><td colspan="3" align="right"><strong>Subtotal:</strong></td><td>{_money(payload.get("subtotal", 0))}</td></tr>
        <tr class="totals"><td colspan="3" align="right"><strong>Shipping:</strong></td><td>{"Free" if shipping == 0 else _money(shipping)}</td></tr>
        <tr class="totals"><td colspan="3" align="right"><strong>Tax:</strong></td><td>{_money(payload.get("tax", 0))}</td></tr>
        <tr class="totals"><td colspan="3" align="right"><strong>Total:</strong></td><td><strong>{_money(payload.get("total", 0))}</strong></td></tr>
      </table>
      <h3>Shipping Address</h3>
      {_address_block(payload.get("shippingAddress") or {})}
      <p>If you have any questions about your order, please contact our customer service.</p>
    """
    return _page("Order Confirmation", body)


def render_order_shipped(payload: dict) -> str:
    body = f"""
      <p>Hello {escape(payload.get("customerName") or "Customer")},</p>
      <p>Great news! Your order <strong>#{escape(payload.get("orderId", "")[:8])}</strong>
      has been shipped and is on its way to you.</p>
      <div style="background-color: #ebf8ff; border-left: 4px solid #4299e1; padding: 15px; margin: 20px 0;">
        <h3 style="margin-top: 0; color: #2b6cb0;">Tracking Information</h3>
        <p><strong>Tracking Number:</strong> {escape(payload.get("trackingNumber", ""))}</p>
      </div>
      <p><strong>Order Total:</strong> {_money(payload.get("total", 0))}</p>
      <h3>Shipping Address</h3>
      {_address_block(payload.get("shippingAddress") or {})}
    """
    return _page("Your Order Has Been Shipped!", body)


RENDERERS = {
    "order_confirmation": render_order_confirmation,
    "order_shipped": render_order_shipped,
}
