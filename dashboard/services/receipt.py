"""
Purchase receipt rendering.

Receipts are rendered to HTML with a Jinja2 sandboxed template.  An
operator template (config/templates/receipt.html.j2) replaces the built-in
one when present.
"""
import logging
from pathlib import Path
from typing import Optional

from jinja2 import BaseLoader, FileSystemLoader, select_autoescape
from jinja2.sandbox import SandboxedEnvironment

from models.purchase import Purchase
from procurement.totals import compute_totals

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Purchase Receipt {{ purchase.receipt_number or '' }}</title>
</head>
<body>
  <h1>Purchase Receipt</h1>
  <table class="meta">
    <tr><th>Receipt No.</th><td>{{ purchase.receipt_number or '-' }}</td></tr>
    <tr><th>DB Number</th><td>{{ purchase.ref_num }}</td></tr>
    <tr><th>Supplier</th><td>{{ purchase.vendor }}</td></tr>
    <tr><th>Date</th><td>{{ purchase.purchase_date or '-' }}</td></tr>
    {% if purchase.invoice_file %}<tr><th>Invoice</th><td>{{ purchase.invoice_file }}</td></tr>{% endif %}
    {% if purchase.received_by %}<tr><th>Received By</th><td>{{ purchase.received_by }}</td></tr>{% endif %}
  </table>

  <table class="items">
    <thead>
      <tr><th>#</th><th>Product</th><th>Qty</th><th>Unit</th><th>Unit Price</th><th>Total</th><th></th></tr>
    </thead>
    <tbody>
    {% for item in purchase.items %}
      <tr class="{{ 'cancelled' if item.is_cancelled else ('returned' if item.is_return else '') }}">
        <td>{{ loop.index }}</td>
        <td>{{ item.product_name or item.product_id }}</td>
        <td>{{ item.quantity or 0 }}</td>
        <td>{{ item.unit_type }}</td>
        <td>{{ item.unit_price | currency }}</td>
        <td>{{ item.line_total | currency }}</td>
        <td>{% if item.is_cancelled %}Cancelled{% elif item.is_return %}Returned{% endif %}</td>
      </tr>
    {% endfor %}
    </tbody>
  </table>

  <table class="totals">
    <tr><th>Subtotal</th><td>{{ totals.subtotal | currency }}</td></tr>
    {% if totals.cancelled_total %}<tr><th>Cancelled</th><td>{{ totals.cancelled_total | currency }}</td></tr>{% endif %}
    {% if totals.return_total %}<tr><th>Returned</th><td>{{ totals.return_total | currency }}</td></tr>{% endif %}
    <tr><th>Total</th><td>{{ totals.grand_total | currency }}</td></tr>
  </table>

  {% if purchase.remarks %}<p class="remarks">{{ purchase.remarks }}</p>{% endif %}
</body>
</html>
"""


def format_currency(value: Optional[float], symbol: str = "₹") -> str:
    """Two decimals with thousands separators, e.g. ₹1,234.50"""
    return f"{symbol}{(value or 0):,.2f}"


def render_receipt(
    purchase: Purchase,
    currency_symbol: str = "₹",
    template_file: Optional[Path] = None,
) -> str:
    """
    Render *purchase* as an HTML receipt.  Totals are recomputed from the
    lines rather than taken from the stored record.
    """
    if template_file and template_file.exists():
        env = SandboxedEnvironment(
            loader=FileSystemLoader(str(template_file.parent)),
            autoescape=select_autoescape(["html", "j2"]),
            keep_trailing_newline=True,
        )
        env.filters["currency"] = lambda v: format_currency(v, currency_symbol)
        tmpl = env.get_template(template_file.name)
    else:
        env = SandboxedEnvironment(loader=BaseLoader(), autoescape=True, keep_trailing_newline=True)
        env.filters["currency"] = lambda v: format_currency(v, currency_symbol)
        tmpl = env.from_string(DEFAULT_RECEIPT_TEMPLATE)

    logger.debug("Rendering receipt for purchase %s", purchase.id)
    return tmpl.render(purchase=purchase, totals=compute_totals(purchase.items))
