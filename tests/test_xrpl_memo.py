"""
Tests for the x402 memo codec (v1).

Test plan:
- Encoding: hex type/format/data, JSON payload shape, optional sessionId
- Field decoding: empty, hex, odd-length hex, plain text, invalid UTF-8
- Matching: absent/empty memos fail, foreign memos skipped, empty data
  skipped, malformed JSON in an x402 memo is fatal, wrong paymentId /
  version / type fail, plain-text (non-hex) memos still match
"""

import json

import pytest

from nexus_settle.challenge import XrpAsset, create_challenge
from nexus_settle.errors import SettlementErrorCode, SettlementVerificationError
from nexus_settle.xrpl.ledger import MemoEntry
from nexus_settle.xrpl.memo import (
    MEMO_FORMAT,
    MEMO_FORMAT_HEX,
    MEMO_TYPE,
    MEMO_TYPE_HEX,
    MEMO_VERSION,
    build_memo_payload,
    build_xrpl_memo,
    decode_memo_field,
    encode_memo,
    match_memo,
)

PAYMENT_ID = "01HZY3J8S3A7XK4Z9T8B"


def _hex(text: str) -> str:
    return text.encode("utf-8").hex().upper()


def _x402_entry(data: str) -> MemoEntry:
    return MemoEntry(memo_type=MEMO_TYPE_HEX, memo_format=MEMO_FORMAT_HEX, memo_data=_hex(data))


def _match_error(memos: list[MemoEntry] | None) -> SettlementVerificationError:
    with pytest.raises(SettlementVerificationError) as exc_info:
        match_memo(memos, PAYMENT_ID)
    return exc_info.value


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class TestMemoEncoding:
    def test_type_and_format_are_hex(self) -> None:
        entry = encode_memo(PAYMENT_ID)
        assert entry.memo_type == "78343032"
        assert bytes.fromhex(entry.memo_format or "").decode("utf-8") == MEMO_FORMAT

    def test_data_is_hex_json_payload(self) -> None:
        entry = encode_memo(PAYMENT_ID)
        payload = json.loads(bytes.fromhex(entry.memo_data or "").decode("utf-8"))
        assert payload == {"v": 1, "t": "x402", "paymentId": PAYMENT_ID}

    def test_session_id_included_when_set(self) -> None:
        entry = encode_memo(PAYMENT_ID, session_id="sess_1")
        payload = json.loads(bytes.fromhex(entry.memo_data or "").decode("utf-8"))
        assert payload["sessionId"] == "sess_1"

    def test_payload_excludes_none_session(self) -> None:
        assert "sessionId" not in build_memo_payload(PAYMENT_ID)

    def test_encoding_is_deterministic(self) -> None:
        assert encode_memo(PAYMENT_ID, "s") == encode_memo(PAYMENT_ID, "s")

    def test_to_xrpl_container(self) -> None:
        container = encode_memo(PAYMENT_ID).to_xrpl()
        assert set(container) == {"Memo"}
        assert set(container["Memo"]) == {"MemoType", "MemoFormat", "MemoData"}

    def test_build_xrpl_memo_uses_challenge_binding(self) -> None:
        challenge = create_challenge(
            network="xrpl:testnet",
            amount="1",
            asset=XrpAsset(),
            destination="rDEST",
            expires_at="2030-01-01T00:00:00Z",
            payment_id=PAYMENT_ID,
            session_id="sess_9",
        )
        container = build_xrpl_memo(challenge)
        assert container == encode_memo(PAYMENT_ID, "sess_9").to_xrpl()

    def test_constants(self) -> None:
        assert MEMO_TYPE == "x402"
        assert MEMO_FORMAT == "application/json"
        assert MEMO_VERSION == 1
        assert MEMO_TYPE_HEX == _hex(MEMO_TYPE)
        assert MEMO_FORMAT_HEX == _hex(MEMO_FORMAT)


# ---------------------------------------------------------------------------
# Field decoding
# ---------------------------------------------------------------------------


class TestDecodeMemoField:
    @pytest.mark.parametrize("raw", [None, ""])
    def test_empty_decodes_to_empty_string(self, raw: str | None) -> None:
        assert decode_memo_field(raw) == ""

    def test_lowercase_hex(self) -> None:
        assert decode_memo_field("78343032") == "x402"

    def test_uppercase_hex(self) -> None:
        assert decode_memo_field("6A6B") == "jk"

    def test_odd_length_hex_is_plain_text(self) -> None:
        assert decode_memo_field("abc") == "abc"

    def test_non_hex_is_plain_text(self) -> None:
        assert decode_memo_field("x402") == "x402"
        assert decode_memo_field("application/json") == "application/json"

    def test_invalid_utf8_is_invalid_memo(self) -> None:
        with pytest.raises(SettlementVerificationError) as exc_info:
            decode_memo_field("fffe")
        assert exc_info.value.code == SettlementErrorCode.INVALID_MEMO


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


class TestMatchMemo:
    def test_matching_memo_is_returned(self) -> None:
        entry = encode_memo(PAYMENT_ID)
        assert match_memo([entry], PAYMENT_ID) == entry

    @pytest.mark.parametrize("memos", [None, []])
    def test_absent_memos_fail(self, memos: list[MemoEntry] | None) -> None:
        assert _match_error(memos).code == SettlementErrorCode.INVALID_MEMO

    def test_foreign_memo_skipped(self) -> None:
        foreign = MemoEntry(memo_type=_hex("wallet"), memo_data=_hex("hello"))
        assert match_memo([foreign, encode_memo(PAYMENT_ID)], PAYMENT_ID).memo_type == MEMO_TYPE_HEX

    def test_foreign_memo_with_garbage_data_skipped(self) -> None:
        foreign = MemoEntry(
            memo_type=MEMO_TYPE_HEX, memo_format=_hex("text/plain"), memo_data=_hex("{nope")
        )
        assert match_memo([foreign, encode_memo(PAYMENT_ID)], PAYMENT_ID)

    def test_empty_entry_skipped(self) -> None:
        assert match_memo([MemoEntry(), encode_memo(PAYMENT_ID)], PAYMENT_ID)

    def test_x402_entry_without_data_skipped(self) -> None:
        empty = MemoEntry(memo_type=MEMO_TYPE_HEX, memo_format=MEMO_FORMAT_HEX)
        assert match_memo([empty, encode_memo(PAYMENT_ID)], PAYMENT_ID)

    def test_malformed_json_is_fatal_even_before_valid_memo(self) -> None:
        error = _match_error([_x402_entry("{not json"), encode_memo(PAYMENT_ID)])
        assert error.code == SettlementErrorCode.INVALID_MEMO
        assert "malformed" in error.message

    def test_deeply_nested_json_is_invalid_memo(self) -> None:
        error = _match_error([_x402_entry("[" * 5000)])
        assert error.code == SettlementErrorCode.INVALID_MEMO

    def test_different_payment_id_fails(self) -> None:
        error = _match_error([encode_memo("someone-else")])
        assert error.code == SettlementErrorCode.INVALID_MEMO

    @pytest.mark.parametrize(
        "payload",
        [
            {"v": 2, "t": "x402", "paymentId": PAYMENT_ID},
            {"v": "1", "t": "x402", "paymentId": PAYMENT_ID},
            {"v": True, "t": "x402", "paymentId": PAYMENT_ID},
            {"v": 1, "t": "other", "paymentId": PAYMENT_ID},
            {"v": 1, "t": "x402"},
            [1, "x402", PAYMENT_ID],
        ],
    )
    def test_wrong_payload_shape_does_not_match(self, payload: object) -> None:
        error = _match_error([_x402_entry(json.dumps(payload))])
        assert error.code == SettlementErrorCode.INVALID_MEMO

    def test_plain_text_fields_match(self) -> None:
        entry = MemoEntry(
            memo_type="x402",
            memo_format="application/json",
            memo_data=json.dumps({"v": 1, "t": "x402", "paymentId": PAYMENT_ID}),
        )
        assert match_memo([entry], PAYMENT_ID) == entry

    def test_first_match_wins_among_many(self) -> None:
        memos = [encode_memo("a"), encode_memo(PAYMENT_ID, "s1"), encode_memo(PAYMENT_ID, "s2")]
        assert match_memo(memos, PAYMENT_ID) == memos[1]
