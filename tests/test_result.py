"""Tests for broadcast result classification."""

from __future__ import annotations

import pytest

from linoclient.errors import (
    BroadcastError,
    ExecutionRejectedError,
    MempoolRejectedError,
    ProtocolError,
    SequenceConflictError,
)
from linoclient.pneuma.result import (
    INVALID_SEQ_ERR_CODE,
    interpret_broadcast_result,
    retrieve_code_from_blockchain_code,
)


def commit_result(check_code: int = 0, deliver_code: int = 0, **extra) -> dict:
    result = {
        "check_tx": {"code": check_code, "log": "check log"},
        "deliver_tx": {"code": deliver_code, "log": "deliver log"},
        "hash": "0xab12",
        "height": "42",
    }
    result.update(extra)
    return result


class TestMasking:
    @pytest.mark.parametrize("code", [154, 0x1009A, 0xFF009A, 0x7700009A])
    def test_low_byte_is_kept(self, code: int) -> None:
        assert retrieve_code_from_blockchain_code(code) == INVALID_SEQ_ERR_CODE

    @pytest.mark.parametrize("confirm_only", [True, False])
    def test_sequence_conflict_regardless_of_high_bits(self, confirm_only: bool) -> None:
        code = 0x1009A
        result = {"code": code, "log": "invalid seq", "hash": ""} if confirm_only else commit_result(check_code=code)

        with pytest.raises(SequenceConflictError) as excinfo:
            interpret_broadcast_result(result, confirm_only)

        assert excinfo.value.code == code


class TestConfirmOnly:
    def test_committed_hash_is_uppercased(self) -> None:
        resp = interpret_broadcast_result({"code": 0, "log": "", "hash": "0xAB12"}, confirm_only=True)
        assert resp.commit_hash == "AB12"

    def test_lowercase_hash(self) -> None:
        resp = interpret_broadcast_result({"code": 0, "hash": "ab12cd"}, confirm_only=True)
        assert resp.commit_hash == "AB12CD"

    def test_mempool_rejection(self) -> None:
        with pytest.raises(MempoolRejectedError) as excinfo:
            interpret_broadcast_result({"code": 12, "log": "insufficient", "hash": "AB"}, confirm_only=True)
        assert (excinfo.value.code, excinfo.value.log) == (12, "insufficient")
        assert excinfo.value.stage == "CheckTx"

    def test_missing_code_is_protocol_error(self) -> None:
        with pytest.raises(ProtocolError):
            interpret_broadcast_result({"hash": "AB"}, confirm_only=True)

    def test_commit_shape_in_confirm_mode(self) -> None:
        with pytest.raises(ProtocolError):
            interpret_broadcast_result(commit_result(), confirm_only=True)


class TestFullCommit:
    def test_committed(self) -> None:
        resp = interpret_broadcast_result(commit_result(), confirm_only=False)
        assert resp.commit_hash == "AB12"
        assert resp.height == 42

    def test_execution_rejected_carries_code(self) -> None:
        with pytest.raises(ExecutionRejectedError) as excinfo:
            interpret_broadcast_result(commit_result(deliver_code=3), confirm_only=False)
        assert excinfo.value.code == 3
        assert excinfo.value.log == "deliver log"

    def test_check_tx_wins_over_deliver_tx(self) -> None:
        with pytest.raises(MempoolRejectedError) as excinfo:
            interpret_broadcast_result(commit_result(check_code=5, deliver_code=3), confirm_only=False)
        assert excinfo.value.code == 5

    def test_pending_pool_rejection_without_deliver_tx(self) -> None:
        with pytest.raises(SequenceConflictError) as excinfo:
            interpret_broadcast_result({"check_tx": {"code": 154, "log": "seq"}, "hash": "AB"}, confirm_only=False)
        assert excinfo.value.log == "seq"

        with pytest.raises(MempoolRejectedError):
            interpret_broadcast_result({"check_tx": {"code": 7, "log": "fee"}, "hash": "AB"}, confirm_only=False)

    def test_rejections_share_base(self) -> None:
        with pytest.raises(BroadcastError):
            interpret_broadcast_result(commit_result(deliver_code=1), confirm_only=False)

    @pytest.mark.parametrize(
        "result",
        [
            None,
            [],
            {"code": 0, "hash": "AB"},
            {"check_tx": {"code": 0}, "hash": "AB"},
            commit_result(hash="not-hex"),
            commit_result(hash=""),
            commit_result(height="tall"),
        ],
    )
    def test_unexpected_shapes(self, result) -> None:
        with pytest.raises(ProtocolError):
            interpret_broadcast_result(result, confirm_only=False)
