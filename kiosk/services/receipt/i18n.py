"""Receipt labels and currency symbols."""
from decimal import Decimal
from typing import Dict

DEFAULT_LANGUAGE = "fr"

CURRENCY_SYMBOLS: Dict[str, str] = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "TRY": "₺",
    "JPY": "¥",
    "CAD": "$",
    "AUD": "$",
    "CHF": "Fr.",
    "CNY": "¥",
    "RUB": "₽",
}

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "fr": {
        "order_number": "Commande No",
        "order_type": "Type de commande",
        "dine_in": "Sur place",
        "takeaway": "À emporter",
        "table_number": "Table No",
        "subtotal": "Sous-total",
        "vat": "TVA",
        "total": "Total",
        "thank_you": "Merci pour votre visite!",
        "special_instructions": "Instructions spéciales",
    },
    "en": {
        "order_number": "Order No",
        "order_type": "Order Type",
        "dine_in": "Dine In",
        "takeaway": "Takeaway",
        "table_number": "Table No",
        "subtotal": "Subtotal",
        "vat": "VAT",
        "total": "Total",
        "thank_you": "Thank you for your visit!",
        "special_instructions": "Special Instructions",
    },
    "tr": {
        "order_number": "Sipariş No",
        "order_type": "Sipariş Tipi",
        "dine_in": "Masa Servisi",
        "takeaway": "Paket Servisi",
        "table_number": "Masa No",
        "subtotal": "Ara Toplam",
        "vat": "KDV",
        "total": "Toplam",
        "thank_you": "Ziyaretiniz için teşekkürler!",
        "special_instructions": "Özel Talimatlar",
    },
    "de": {
        "order_number": "Bestellung Nr",
        "order_type": "Bestellart",
        "dine_in": "Vor Ort",
        "takeaway": "Zum Mitnehmen",
        "table_number": "Tisch Nr",
        "subtotal": "Zwischensumme",
        "vat": "MwSt",
        "total": "Gesamt",
        "thank_you": "Vielen Dank für Ihren Besuch!",
        "special_instructions": "Besondere Hinweise",
    },
    "es": {
        "order_number": "Pedido No",
        "order_type": "Tipo de pedido",
        "dine_in": "Para comer aquí",
        "takeaway": "Para llevar",
        "table_number": "Mesa No",
        "subtotal": "Subtotal",
        "vat": "IVA",
        "total": "Total",
        "thank_you": "¡Gracias por su visita!",
        "special_instructions": "Instrucciones especiales",
    },
}


def labels_for(language: str) -> Dict[str, str]:
    """Receipt labels in ``language``, French when it is not translated."""
    return TRANSLATIONS.get((language or "").lower(), TRANSLATIONS[DEFAULT_LANGUAGE])


def currency_symbol(code: str) -> str:
    """Symbol for a currency code; unknown codes are returned unchanged."""
    return CURRENCY_SYMBOLS.get((code or "").upper(), code)


def format_money(amount: Decimal, currency: str) -> str:
    return f"{amount:.2f} {currency_symbol(currency)}"
