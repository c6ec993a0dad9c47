"""Plain text, ESC/POS and HTML renderers over one ``ReceiptDocument``.

The plain text and ESC/POS outputs share the same row layout. ESC/POS
commands come from python-escpos. Thermal targets strip emoji and other
extended symbols, the HTML output keeps them.
"""
import html
import unicodedata
from typing import Iterator, List, NamedTuple, Optional, Union

from escpos.printer import Dummy

from kiosk.core.config import settings
from kiosk.services.receipt.document import ReceiptDocument, ReceiptLine, ReceiptModifier
from kiosk.services.receipt.i18n import format_money, labels_for


DEFAULT_WIDTH = settings.receipt_width

# Zero-width joiner and variation selectors glue emoji sequences together
_EMOJI_JOINERS = {"‍", "︎", "️", "⃣"}


def sanitize_text(text: Optional[str], keep_extended: bool) -> str:
    """Prepare text for a print target.

    With ``keep_extended`` the text is returned as is. Otherwise emoji,
    pictographs and other symbols a thermal printer cannot render are
    removed; letters with accents and currency signs are kept.
    """
    if not text:
        return ""
    if keep_extended:
        return text
    kept = []
    for char in text:
        if char in _EMOJI_JOINERS or ord(char) > 0xFFFF:
            continue
        if unicodedata.category(char) in ("So", "Cs", "Co", "Cn"):
            continue
        kept.append(char)
    return " ".join("".join(kept).split())


class Row(NamedTuple):
    left: str
    right: str = ""
    style: str = "normal"  # normal | bold | large | large_bold
    align: str = "left"  # left | center | divider


def _amount(doc: ReceiptDocument, value) -> str:
    return format_money(value, doc.currency)


def _modifier_label(modifier: ReceiptModifier, clean) -> str:
    if modifier.kind == "topping" and modifier.quantity > 1:
        return f"  + {modifier.quantity}x {clean(modifier.name)}"
    return f"  + {clean(modifier.name)}"


def _item_rows(doc: ReceiptDocument, line: ReceiptLine, labels, clean) -> Iterator[Row]:
    yield Row(f"{line.quantity}x {clean(line.name)}", _amount(doc, line.unit_price), style="bold")
    for modifier in line.modifiers:
        yield Row(_modifier_label(modifier, clean), _amount(doc, modifier.amount) if modifier.amount else "")
    if line.special_instructions:
        yield Row(f'  {labels["special_instructions"]}: "{clean(line.special_instructions)}"')


def layout_rows(doc: ReceiptDocument, keep_extended: bool = False) -> List[Row]:
    """The receipt as rows, header to footer."""
    labels = labels_for(doc.meta.language)

    def clean(text):
        return sanitize_text(text, keep_extended)

    rows = [Row(clean(doc.restaurant_name), style="large_bold", align="center")]
    if doc.location:
        rows.append(Row(clean(doc.location), align="center"))
    rows.append(Row(doc.meta.placed_at.strftime("%d/%m/%Y %H:%M"), align="center"))
    rows.append(Row(f"{labels['order_number']}: {doc.meta.order_number}", style="large", align="center"))
    if doc.meta.order_type == "takeaway":
        rows.append(Row(labels["takeaway"], style="bold", align="center"))
    elif doc.meta.order_type == "dine-in":
        text = labels["dine_in"]
        if doc.meta.table_number:
            text += f" - {labels['table_number']}: {clean(doc.meta.table_number)}"
        rows.append(Row(text, style="bold", align="center"))

    rows.append(Row("", align="divider"))
    for line in doc.lines:
        rows.extend(_item_rows(doc, line, labels, clean))
    rows.append(Row("", align="divider"))

    totals = doc.totals
    rows.append(Row(f"{labels['subtotal']}:", _amount(doc, totals.subtotal)))
    rows.append(Row(f"{labels['vat']} ({totals.tax_rate.normalize():f}%):", _amount(doc, totals.tax)))
    rows.append(Row(f"{labels['total']}:", _amount(doc, totals.total), style="large_bold"))
    rows.append(Row("", align="divider"))
    rows.append(Row(labels["thank_you"], align="center"))
    return rows


def _fit(left: str, right: str, width: int) -> str:
    if not right:
        return left[:width]
    room = width - len(right) - 1
    return f"{left[:room]:<{room}} {right}"


def render_plain_text(doc: ReceiptDocument, width: int = DEFAULT_WIDTH) -> str:
    """Fixed-width text receipt."""
    out = []
    for row in layout_rows(doc):
        if row.align == "divider":
            out.append("-" * width)
        elif row.align == "center":
            out.append(row.left[:width].center(width).rstrip())
        else:
            out.append(_fit(row.left, row.right, width))
    return "\n".join(out) + "\n"


_STYLES = {
    "normal": {"bold": False, "double_height": False, "double_width": False, "normal_textsize": True},
    "bold": {"bold": True, "double_height": False, "double_width": False, "normal_textsize": True},
    "large": {"bold": False, "double_height": True, "double_width": True},
    "large_bold": {"bold": True, "double_height": True, "double_width": True},
}


def render_escpos(doc: ReceiptDocument, width: int = DEFAULT_WIDTH) -> bytes:
    """ESC/POS command stream ending with a paper cut."""
    printer = Dummy()
    for row in layout_rows(doc):
        if row.align == "divider":
            printer.set(align="center", **_STYLES["normal"])
            printer.text("-" * width + "\n")
        elif row.align == "center":
            printer.set(align="center", **_STYLES[row.style])
            printer.text(row.left + "\n")
        else:
            printer.set(align="left", **_STYLES[row.style])
            printer.text(_fit(row.left, row.right, width) + "\n")
    printer.set(align="left", **_STYLES["normal"])
    printer.ln(4)
    printer.cut()
    return printer.output


_PRINT_CSS = """
@page { size: 80mm auto; margin: 0mm; }
body { font-family: 'Courier New', monospace; width: 72mm; margin: 0 auto; padding: 5mm 0; font-size: 12px; line-height: 1.2; }
.center { text-align: center; }
.row { display: flex; justify-content: space-between; }
.bold { font-weight: bold; }
.large, .large_bold { font-size: 16px; font-weight: bold; }
.divider { border-top: 1px dashed #000; margin: 4px 0; }
.modifier { padding-left: 8px; }
.instructions { padding-left: 8px; font-style: italic; }
"""


def render_html_fragment(doc: ReceiptDocument) -> str:
    """Receipt body markup, emoji preserved."""
    out = ['<div class="receipt">']
    for row in layout_rows(doc, keep_extended=True):
        if row.align == "divider":
            out.append('<div class="divider"></div>')
            continue
        left = html.escape(row.left.strip())
        css = [row.style] if row.style != "normal" else []
        if row.left.startswith("  + "):
            css.append("modifier")
        elif row.left.startswith("  "):
            css.append("instructions")
        if row.align == "center":
            out.append(f'<div class="{" ".join(["center"] + css)}">{left}</div>')
        else:
            right = html.escape(row.right)
            out.append(
                f'<div class="{" ".join(["row"] + css)}"><span>{left}</span><span>{right}</span></div>'
            )
    out.append("</div>")
    return "\n".join(out)


def render_html(doc: ReceiptDocument) -> str:
    """Complete print document for an 80 mm browser print."""
    title = html.escape(f"{doc.restaurant_name} #{doc.meta.order_number}")
    return (
        "<!DOCTYPE html>\n"
        f'<html lang="{html.escape(doc.meta.language)}">\n'
        f'<head><meta charset="utf-8"><title>{title}</title><style>{_PRINT_CSS}</style></head>\n'
        f"<body>\n{render_html_fragment(doc)}\n</body>\n</html>\n"
    )


RENDERERS = {
    "plain": render_plain_text,
    "escpos": render_escpos,
    "html": render_html,
}


def render(doc: ReceiptDocument, fmt: str) -> Union[str, bytes]:
    try:
        renderer = RENDERERS[fmt]
    except KeyError:
        raise ValueError(f"Unknown receipt format: {fmt}")
    return renderer(doc)
