"""PIX static BR Code encoder.

Builds the EMV® QRCPS-MPM payload defined by the Banco Central do Brasil
("copia e cola" string) and renders it as a PNG QR code.

Payload layout (``ID`` + two-digit length + value)::

    00 payload format indicator ("01")
    26 merchant account information
        00 GUI ("br.gov.bcb.pix")
        01 PIX key
        02 free-text description (optional)
    52 merchant category code ("0000")
    53 transaction currency ("986", BRL)
    54 transaction amount ("225.00")
    58 country code ("BR")
    59 merchant name (max 25)
    60 merchant city (max 15)
    62 additional data field
        05 transaction id (max 25, alphanumeric)
    63 CRC16-CCITT-FALSE over everything up to and including "6304"
"""

from __future__ import annotations

import base64
import binascii
import io
import re
import secrets
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from modules.payments.exceptions import PixGenerationError

PIX_GUI = "br.gov.bcb.pix"
PAYLOAD_FORMAT_INDICATOR = "01"
MERCHANT_CATEGORY_CODE = "0000"
CURRENCY_BRL = "986"
COUNTRY_CODE = "BR"

MAX_MERCHANT_NAME = 25
MAX_MERCHANT_CITY = 15
MAX_TRANSACTION_ID = 25
MAX_FIELD_LENGTH = 99
MAX_AMOUNT_LENGTH = 13

_TXID_PATTERN = re.compile(r"[A-Za-z0-9]{1,25}")
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PixPayload:
    payload: str
    qr_image_png: bytes

    @property
    def qr_data_uri(self) -> str:
        encoded = base64.b64encode(self.qr_image_png).decode("ascii")
        return f"data:image/png;base64,{encoded}"


def encode_pix(
    key: str,
    payee_name: str,
    city: str,
    amount: Union[Decimal, int, float, str],
    transaction_id: str,
    message: str = "",
) -> PixPayload:
    """Build the BR Code payload and its QR image.

    Raises:
        PixGenerationError: non-positive or non-finite amount, missing key,
            malformed transaction id or oversized merchant data.
    """
    payload = build_payload(key, payee_name, city, amount, transaction_id, message)
    return PixPayload(payload=payload, qr_image_png=render_qr_png(payload))


def build_payload(
    key: str,
    payee_name: str,
    city: str,
    amount: Union[Decimal, int, float, str],
    transaction_id: str,
    message: str = "",
) -> str:
    key = (key or "").strip()
    if not key:
        raise PixGenerationError("PIX key is not configured.")
    if not _TXID_PATTERN.fullmatch(transaction_id or ""):
        raise PixGenerationError(
            f"Invalid PIX transaction id {transaction_id!r}: "
            "expected 1-25 alphanumeric characters."
        )

    value = normalize_amount(amount)
    amount_text = f"{value:.2f}"
    if len(amount_text) > MAX_AMOUNT_LENGTH:
        raise PixGenerationError(f"PIX amount {amount_text} is too large.")

    name = _sanitize(payee_name)[:MAX_MERCHANT_NAME]
    city_name = _sanitize(city)[:MAX_MERCHANT_CITY]
    if not name or not city_name:
        raise PixGenerationError("PIX merchant name and city are required.")

    payload = "".join(
        [
            _field("00", PAYLOAD_FORMAT_INDICATOR),
            _field("26", _merchant_account(key, _sanitize(message))),
            _field("52", MERCHANT_CATEGORY_CODE),
            _field("53", CURRENCY_BRL),
            _field("54", amount_text),
            _field("58", COUNTRY_CODE),
            _field("59", name),
            _field("60", city_name),
            _field("62", _field("05", transaction_id)),
            "6304",
        ]
    )
    return payload + crc16(payload)


def normalize_amount(amount: Union[Decimal, int, float, str]) -> Decimal:
    """Return *amount* rounded half-up to cents, rejecting invalid values."""
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise PixGenerationError(f"Invalid PIX amount {amount!r}.") from exc
    if not value.is_finite():
        raise PixGenerationError(f"PIX amount must be finite, got {amount!r}.")
    value = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if value <= 0:
        raise PixGenerationError(f"PIX amount must be positive, got {amount!r}.")
    return value


def crc16(data: str) -> str:
    """CRC16-CCITT-FALSE (poly 0x1021, init 0xFFFF) as 4 upper-case hex digits."""
    return f"{binascii.crc_hqx(data.encode('utf-8'), 0xFFFF):04X}"


def generate_transaction_id(now: Optional[datetime] = None) -> str:
    """``TX`` + millisecond timestamp + random hex, capped at 25 characters."""
    moment = now or datetime.now()
    millis = int(moment.timestamp() * 1000)
    return f"TX{millis}{secrets.token_hex(5).upper()}"[:MAX_TRANSACTION_ID]


def render_qr_png(payload: str) -> bytes:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=8, border=4)
    qr.add_data(payload)
    qr.make(fit=True)
    buffer = io.BytesIO()
    qr.make_image().save(buffer)
    return buffer.getvalue()


def _field(tag: str, value: str) -> str:
    if len(value) > MAX_FIELD_LENGTH:
        raise PixGenerationError(f"PIX field {tag} exceeds {MAX_FIELD_LENGTH} chars.")
    return f"{tag}{len(value):02d}{value}"


def _merchant_account(key: str, message: str) -> str:
    account = _field("00", PIX_GUI) + _field("01", key)
    # "02" + 2-digit length takes 4 characters of the 99 available
    room = MAX_FIELD_LENGTH - len(account) - 4
    if message and room > 0:
        account += _field("02", message[:room])
    return account


def _sanitize(text: str) -> str:
    """Strip accents and characters banking apps reject."""
    ascii_text = (
        unicodedata.normalize("NFKD", text or "")
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    return re.sub(r"[^A-Za-z0-9 .,\-/]", "", ascii_text).strip()
