import hashlib
import hmac

import pytest

from paygate.infrastructure import signing

SECRET = "top-secret"


def _flip_one_char(value: str) -> str:
    replacement = "0" if value[0] != "0" else "1"
    return replacement + value[1:]


class TestSortedScheme:
    def test_round_trip_verifies(self):
        params = {"vnp_TxnRef": "VNPAY_BK001_1", "vnp_Amount": "50000000", "vnp_Locale": "vn"}
        params["vnp_SecureHash"] = signing.sign_sorted(params, SECRET, encode=False)

        assert signing.verify_sorted(params, SECRET)

    def test_sign_data_is_sorted_and_skips_hash_fields(self):
        params = {
            "vnp_TxnRef": "A",
            "vnp_Amount": "100",
            "vnp_SecureHash": "abc",
            "vnp_SecureHashType": "HmacSHA512",
        }

        assert signing.sorted_sign_data(params, encode=False) == "vnp_Amount=100&vnp_TxnRef=A"

    def test_outbound_values_are_percent_encoded(self):
        params = {"vnp_OrderInfo": "Thanh toan BK001", "vnp_ReturnUrl": "https://x.vn/r?a=1"}

        data = signing.sorted_sign_data(params, encode=True)

        assert data == (
            "vnp_OrderInfo=Thanh%20toan%20BK001&vnp_ReturnUrl=https%3A%2F%2Fx.vn%2Fr%3Fa%3D1"
        )

    def test_uses_hmac_sha512(self):
        params = {"vnp_Amount": "100"}
        expected = hmac.new(SECRET.encode(), b"vnp_Amount=100", hashlib.sha512).hexdigest()

        assert signing.sign_sorted(params, SECRET) == expected

    def test_single_byte_tamper_fails(self):
        params = {"vnp_TxnRef": "VNPAY_BK001_1", "vnp_Amount": "50000000"}
        params["vnp_SecureHash"] = signing.sign_sorted(params, SECRET, encode=False)
        params["vnp_Amount"] = "50000001"

        assert not signing.verify_sorted(params, SECRET)

    def test_tampered_hash_fails(self):
        params = {"vnp_TxnRef": "VNPAY_BK001_1"}
        params["vnp_SecureHash"] = _flip_one_char(signing.sign_sorted(params, SECRET, False))

        assert not signing.verify_sorted(params, SECRET)

    def test_missing_hash_fails(self):
        assert not signing.verify_sorted({"vnp_TxnRef": "VNPAY_BK001_1"}, SECRET)

    def test_empty_values_are_signed(self):
        params = {"vnp_BankCode": "", "vnp_TxnRef": "A", "vnp_Skipped": None}

        assert signing.sorted_sign_data(params, encode=False) == "vnp_BankCode=&vnp_TxnRef=A"


class TestOrderedScheme:
    FIELDS = ("accessKey", "amount", "orderId")

    def test_round_trip_verifies(self):
        params = {"accessKey": "ak", "amount": 500000, "orderId": "MOMO_BK001_1"}
        signature = signing.sign_ordered(params, self.FIELDS, SECRET)

        assert signing.verify_ordered(params, self.FIELDS, SECRET, signature)

    def test_sign_data_follows_field_order(self):
        params = {"orderId": "O", "amount": 1, "accessKey": "ak", "extra": "ignored"}

        assert signing.ordered_sign_data(params, self.FIELDS) == "accessKey=ak&amount=1&orderId=O"

    def test_single_byte_tamper_fails(self):
        params = {"accessKey": "ak", "amount": 500000, "orderId": "MOMO_BK001_1"}
        signature = signing.sign_ordered(params, self.FIELDS, SECRET)
        params["orderId"] = "MOMO_BK001_2"

        assert not signing.verify_ordered(params, self.FIELDS, SECRET, signature)

    @pytest.mark.parametrize("signature", [None, "", "not-hex-at-all", "abcd"])
    def test_missing_or_malformed_signature_fails(self, signature):
        params = {"accessKey": "ak", "amount": 1, "orderId": "O"}

        assert not signing.verify_ordered(params, self.FIELDS, SECRET, signature)

    def test_uppercase_hex_is_accepted(self):
        params = {"accessKey": "ak", "amount": 1, "orderId": "O"}
        signature = signing.sign_ordered(params, self.FIELDS, SECRET).upper()

        assert signing.verify_ordered(params, self.FIELDS, SECRET, signature)

    def test_momo_create_field_list_matches_documented_string(self):
        params = {name: name.upper() for name in signing.MOMO_CREATE_FIELDS}

        assert signing.ordered_sign_data(params, signing.MOMO_CREATE_FIELDS) == (
            "accessKey=ACCESSKEY&amount=AMOUNT&extraData=EXTRADATA&ipnUrl=IPNURL"
            "&orderId=ORDERID&orderInfo=ORDERINFO&partnerCode=PARTNERCODE"
            "&redirectUrl=REDIRECTURL&requestId=REQUESTID&requestType=REQUESTTYPE"
        )


class TestOpaqueScheme:
    def test_piped_mac_data_uses_field_order(self):
        params = {
            "app_id": 2553,
            "app_trans_id": "240501_BK001_1",
            "app_user": "u",
            "amount": 500000,
            "app_time": 1714532400000,
            "embed_data": "{}",
            "item": "[]",
        }

        assert signing.piped_mac_data(params, signing.ZALOPAY_CREATE_FIELDS) == (
            "2553|240501_BK001_1|u|500000|1714532400000|{}|[]"
        )

    def test_raw_data_round_trip(self):
        data = '{"app_trans_id":"240501_BK001_1","amount":500000}'
        mac = signing.hmac_hex("key2", data)

        assert signing.verify_opaque(data, "key2", mac)

    def test_reserialized_data_fails(self):
        data = '{"app_trans_id":"240501_BK001_1","amount":500000}'
        mac = signing.hmac_hex("key2", data)

        assert not signing.verify_opaque(data.replace(",", ", "), "key2", mac)

    def test_wrong_key_fails(self):
        data = '{"amount":500000}'

        assert not signing.verify_opaque(data, "key2", signing.hmac_hex("key1", data))

    @pytest.mark.parametrize("data", [None, "", {"amount": 1}])
    def test_missing_data_fails(self, data):
        assert not signing.verify_opaque(data, "key2", "00" * 32)


def test_encode_uri_component_matches_javascript():
    assert signing.encode_uri_component("a b&c=d/é!*'()~") == "a%20b%26c%3Dd%2F%C3%A9!*'()~"
