"""Unit tests for the PIX BR Code encoder."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from modules.payments.exceptions import PixGenerationError
from modules.payments.pix import (
    MAX_TRANSACTION_ID,
    build_payload,
    crc16,
    encode_pix,
    generate_transaction_id,
    normalize_amount,
)

pytestmark = pytest.mark.unit

PIX_KEY = "+5562998130462"


def _payload(**overrides) -> str:
    kwargs = {
        "key": PIX_KEY,
        "payee_name": "EMUNAH GOLD 18K",
        "city": "GOIANIA",
        "amount": Decimal("225.00"),
        "transaction_id": "TX123",
        "message": "Pedido EMU1",
    }
    kwargs.update(overrides)
    return build_payload(**kwargs)


class TestCrc16:
    def test_check_value(self):
        assert crc16("123456789") == "29B1"

    def test_is_four_uppercase_hex_digits(self):
        value = crc16("000201")
        assert len(value) == 4
        assert value == value.upper()
        int(value, 16)


class TestBuildPayload:
    def test_fields_in_order(self):
        payload = _payload()

        assert payload.startswith("000201")
        assert "26510014br.gov.bcb.pix0114+55629981304620211Pedido EMU1" in payload
        assert "52040000" in payload
        assert "5303986" in payload
        assert "5406225.00" in payload
        assert "5802BR" in payload
        assert "5915EMUNAH GOLD 18K" in payload
        assert "6007GOIANIA" in payload
        assert "62090505TX123" in payload

    def test_ends_with_crc_of_everything_before_it(self):
        payload = _payload()

        assert payload[-8:-4] == "6304"
        assert payload[-4:] == crc16(payload[:-4])

    def test_accents_are_stripped(self):
        payload = _payload(payee_name="Emunah Joalheria", city="Goiânia")

        assert "6007Goiania" in payload

    def test_long_merchant_name_and_city_are_truncated(self):
        payload = _payload(
            payee_name="JOALHERIA EMUNAH GOLD DEZOITO QUILATES", city="APARECIDA DE GOIANIA"
        )

        assert "5925JOALHERIA EMUNAH GOLD DEZ" in payload
        assert "6015APARECIDA DE GO" in payload

    def test_long_message_is_cut_to_fit_merchant_account(self):
        payload = _payload(message="x" * 200)

        assert payload[6:10] == "2699"

    def test_amount_rounded_half_up(self):
        payload = _payload(amount="10.005")

        assert "540510.01" in payload

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1.00"), "NaN", "abc"])
    def test_invalid_amount_rejected(self, amount):
        with pytest.raises(PixGenerationError):
            _payload(amount=amount)

    def test_amount_too_long_rejected(self):
        with pytest.raises(PixGenerationError, match="too large"):
            _payload(amount=Decimal("12345678901.00"))

    def test_missing_key_rejected(self):
        with pytest.raises(PixGenerationError, match="key"):
            _payload(key="  ")

    @pytest.mark.parametrize("txid", ["", "TX-1", "A" * 26])
    def test_invalid_transaction_id_rejected(self, txid):
        with pytest.raises(PixGenerationError):
            _payload(transaction_id=txid)

    def test_blank_merchant_name_rejected(self):
        with pytest.raises(PixGenerationError, match="merchant"):
            _payload(payee_name="***")

    def test_public_message_hides_details(self):
        with pytest.raises(PixGenerationError) as excinfo:
            _payload(key="")

        assert excinfo.value.public_message == "Could not generate the PIX payment code."


class TestNormalizeAmount:
    def test_accepts_float_via_string(self):
        assert normalize_amount(19.9) == Decimal("19.90")

    def test_rejects_infinity(self):
        with pytest.raises(PixGenerationError):
            normalize_amount(Decimal("Infinity"))


class TestTransactionId:
    def test_shape(self):
        moment = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

        txid = generate_transaction_id(moment)

        assert txid.startswith(f"TX{int(moment.timestamp() * 1000)}")
        assert len(txid) == MAX_TRANSACTION_ID
        assert txid.isalnum()

    def test_two_ids_differ(self):
        moment = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

        assert generate_transaction_id(moment) != generate_transaction_id(moment)


class TestEncodePix:
    def test_returns_png_and_data_uri(self):
        pix = encode_pix(
            key=PIX_KEY,
            payee_name="EMUNAH GOLD 18K",
            city="GOIANIA",
            amount=Decimal("99.90"),
            transaction_id="TX1",
        )

        assert pix.payload.startswith("000201")
        assert pix.qr_image_png.startswith(b"\x89PNG")
        assert pix.qr_data_uri.startswith("data:image/png;base64,")
