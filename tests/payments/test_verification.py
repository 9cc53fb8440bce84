"""Tests for x402 SOL payment verification."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from memeforge.payments.verification import (
    FAILURE_CLASSES,
    LAMPORTS_PER_SOL,
    ErrorCode,
    FailureClass,
    PaymentVerificationError,
    PaymentVerificationResult,
    PaymentVerifier,
    _rpc_call,
    balance_delta,
    classify_failure,
    extract_parties,
)

RPC_CALL = "memeforge.payments.verification._rpc_call"


@pytest.fixture
def verifier(recipient_wallet):
    return PaymentVerifier(
        rpc_url="https://rpc.test.invalid",
        recipient_wallet=recipient_wallet,
        default_amount=Decimal("0.01"),
    )


class TestExtractParties:
    """Tests for position-based sender/recipient extraction."""

    def test_plain_string_keys(self, make_transaction, sender_wallet, recipient_wallet):
        assert extract_parties(make_transaction()) == (sender_wallet, recipient_wallet)

    def test_json_parsed_keys(self, sender_wallet, recipient_wallet):
        tx = {
            "transaction": {
                "message": {
                    "accountKeys": [
                        {"pubkey": sender_wallet, "signer": True, "writable": True},
                        {"pubkey": recipient_wallet, "signer": False, "writable": True},
                    ]
                }
            }
        }
        assert extract_parties(tx) == (sender_wallet, recipient_wallet)

    def test_single_key(self, sender_wallet):
        tx = {"transaction": {"message": {"accountKeys": [sender_wallet]}}}
        assert extract_parties(tx) == (sender_wallet, None)

    def test_missing_message(self):
        assert extract_parties({}) == (None, None)


class TestBalanceDelta:
    """Tests for lamport balance delta conversion."""

    def test_converts_lamports_to_sol(self):
        meta = {"preBalances": [3_000_000_000], "postBalances": [1_500_000_000]}
        assert balance_delta(meta) == Decimal("1.5")

    def test_empty_arrays(self):
        assert balance_delta({"preBalances": [], "postBalances": []}) is None

    def test_absent_arrays(self):
        assert balance_delta({}) is None

    def test_lamports_per_sol(self):
        assert LAMPORTS_PER_SOL == Decimal(1_000_000_000)


class TestFailureClasses:
    """Every error code must map to a failure class."""

    def test_exhaustive(self):
        assert set(FAILURE_CLASSES) == set(ErrorCode)

    def test_input_errors_are_bad_requests(self):
        assert classify_failure(ErrorCode.MISSING_PARAMS) is FailureClass.bad_request
        assert classify_failure(ErrorCode.INVALID_SIGNATURE) is FailureClass.bad_request

    def test_policy_failures_require_payment(self):
        for code in (
            ErrorCode.SENDER_MISMATCH,
            ErrorCode.RECIPIENT_MISMATCH,
            ErrorCode.INSUFFICIENT_AMOUNT,
            ErrorCode.TRANSACTION_FAILED,
            ErrorCode.NO_BALANCE_DATA,
        ):
            assert classify_failure(code) is FailureClass.payment_required

    def test_not_found_is_distinct(self):
        assert classify_failure(ErrorCode.TRANSACTION_NOT_FOUND) is FailureClass.not_found

    def test_rpc_trouble_is_upstream(self):
        assert classify_failure(ErrorCode.VERIFICATION_ERROR) is FailureClass.upstream_error


class TestResultSerialization:
    """Tests for the x402 wire shape."""

    def test_verified_to_dict(self):
        result = PaymentVerificationResult(
            verified=True,
            signature="sig",
            required_amount=Decimal("0.01"),
            paid_amount=Decimal("0.02"),
            block_timestamp=1_700_000_000,
            sender="alice",
            recipient="bob",
        )
        assert result.to_dict() == {
            "verified": True,
            "amount": 0.02,
            "requiredAmount": 0.01,
            "signature": "sig",
            "timestamp": 1_700_000_000,
            "sender": "alice",
            "recipient": "bob",
        }
        assert result.failure_class is None

    def test_rejected_to_dict_merges_details(self):
        result = PaymentVerificationResult(
            verified=False,
            signature="sig",
            required_amount=Decimal("0.01"),
            error_code=ErrorCode.SENDER_MISMATCH,
            error="Transaction sender does not match user wallet",
            details={"expected": "alice", "actual": "mallory"},
        )
        data = result.to_dict()
        assert data["verified"] is False
        assert data["code"] == "SENDER_MISMATCH"
        assert data["expected"] == "alice"
        assert data["actual"] == "mallory"


class TestVerifyInputValidation:
    """Input checks happen before any network call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("signature,wallet", [
        (None, "wallet"),
        ("5" * 88, None),
        ("", "wallet"),
        ("5" * 88, ""),
        (None, None),
    ])
    async def test_missing_params(self, verifier, signature, wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            result = await verifier.verify(signature, wallet)

        assert result.verified is False
        assert result.error_code == ErrorCode.MISSING_PARAMS
        mock_rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_short_signature(self, verifier, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            result = await verifier.verify("5" * 63, sender_wallet)

        assert result.verified is False
        assert result.error_code == ErrorCode.INVALID_SIGNATURE
        mock_rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_sixty_four_characters_reaches_rpc(self, verifier, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = None
            result = await verifier.verify("5" * 64, sender_wallet)

        assert result.error_code == ErrorCode.TRANSACTION_NOT_FOUND
        mock_rpc.assert_awaited_once()


class TestVerifyPayment:
    """Tests for the main verification flow."""

    @pytest.mark.asyncio
    async def test_successful_verification(
        self, verifier, make_transaction, signature, sender_wallet, recipient_wallet
    ):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction(lamports_spent=20_000_000)
            result = await verifier.verify(signature, sender_wallet, Decimal("0.01"))

        assert result.verified is True
        assert result.paid_amount == Decimal("0.02")
        assert result.required_amount == Decimal("0.01")
        assert result.sender == sender_wallet
        assert result.recipient == recipient_wallet
        assert result.block_timestamp == 1_700_000_000
        assert result.signature == signature
        assert result.error_code is None

    @pytest.mark.asyncio
    async def test_requests_transaction_with_commitment(self, verifier, make_transaction, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction()
            await verifier.verify(signature, sender_wallet)

        args, kwargs = mock_rpc.call_args
        assert args[0] == "https://rpc.test.invalid"
        assert args[1] == "getTransaction"
        assert args[2][0] == signature
        assert args[2][1]["commitment"] == "confirmed"
        assert args[2][1]["maxSupportedTransactionVersion"] == 0
        assert kwargs["timeout"] == 30.0

    @pytest.mark.asyncio
    async def test_exact_amount_is_enough(self, verifier, make_transaction, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction(lamports_spent=10_000_000)
            result = await verifier.verify(signature, sender_wallet)

        assert result.verified is True
        assert result.paid_amount == Decimal("0.01")

    @pytest.mark.asyncio
    async def test_exact_amount_given_as_float(self, verifier, make_transaction, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction(lamports_spent=10_000_000)
            result = await verifier.verify(signature, sender_wallet, 0.01)

        assert result.verified is True
        assert result.required_amount == Decimal("0.01")

    @pytest.mark.asyncio
    async def test_default_amount_applies(self, verifier, make_transaction, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction(lamports_spent=9_999_999)
            result = await verifier.verify(signature, sender_wallet)

        assert result.verified is False
        assert result.required_amount == Decimal("0.01")
        assert result.error_code == ErrorCode.INSUFFICIENT_AMOUNT

    @pytest.mark.asyncio
    async def test_insufficient_amount(self, verifier, make_transaction, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction(lamports_spent=5_000_000)
            result = await verifier.verify(signature, sender_wallet, Decimal("0.01"))

        assert result.verified is False
        assert result.error_code == ErrorCode.INSUFFICIENT_AMOUNT
        assert result.paid_amount == Decimal("0.005")
        assert result.details == {"paid": 0.005, "required": 0.01}

    @pytest.mark.asyncio
    async def test_sender_mismatch_regardless_of_amount(
        self, verifier, make_transaction, signature, sender_wallet
    ):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction(
                sender="MaLLoRyWa11et1111111111111111111111111111111",
                lamports_spent=900_000_000,
            )
            result = await verifier.verify(signature, sender_wallet)

        assert result.verified is False
        assert result.error_code == ErrorCode.SENDER_MISMATCH
        assert result.details["expected"] == sender_wallet
        assert result.details["actual"] == "MaLLoRyWa11et1111111111111111111111111111111"

    @pytest.mark.asyncio
    async def test_recipient_mismatch(
        self, verifier, make_transaction, signature, sender_wallet, recipient_wallet
    ):
        other = "So11111111111111111111111111111111111111112"
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction(recipient=other)
            result = await verifier.verify(signature, sender_wallet)

        assert result.verified is False
        assert result.error_code == ErrorCode.RECIPIENT_MISMATCH
        assert result.details == {"expected": recipient_wallet, "actual": other}

    @pytest.mark.asyncio
    async def test_transaction_not_found(self, verifier, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = None
            result = await verifier.verify(signature, sender_wallet)

        assert result.verified is False
        assert result.error_code == ErrorCode.TRANSACTION_NOT_FOUND

    @pytest.mark.asyncio
    async def test_transaction_failed(self, verifier, make_transaction, signature, sender_wallet):
        err = {"InstructionError": [0, {"Custom": 1}]}
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction(err=err)
            result = await verifier.verify(signature, sender_wallet)

        assert result.verified is False
        assert result.error_code == ErrorCode.TRANSACTION_FAILED
        assert result.details == {"details": err}

    @pytest.mark.asyncio
    async def test_no_balance_data(self, verifier, make_transaction, signature, sender_wallet):
        tx = make_transaction()
        tx["meta"]["preBalances"] = []
        tx["meta"]["postBalances"] = []
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = tx
            result = await verifier.verify(signature, sender_wallet)

        assert result.verified is False
        assert result.error_code == ErrorCode.NO_BALANCE_DATA

    @pytest.mark.asyncio
    async def test_rpc_network_error(self, verifier, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.side_effect = httpx.ConnectError("connection refused")
            result = await verifier.verify(signature, sender_wallet)

        assert result.verified is False
        assert result.error_code == ErrorCode.VERIFICATION_ERROR
        # Internal details stay out of the client-facing message
        assert "refused" not in result.error

    @pytest.mark.asyncio
    async def test_rpc_error_member(self, verifier, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.side_effect = PaymentVerificationError("RPC error: {'code': -32602}")
            result = await verifier.verify(signature, sender_wallet)

        assert result.error_code == ErrorCode.VERIFICATION_ERROR

    @pytest.mark.asyncio
    async def test_malformed_result(self, verifier, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = ["not", "a", "transaction"]
            result = await verifier.verify(signature, sender_wallet)

        assert result.error_code == ErrorCode.VERIFICATION_ERROR

    @pytest.mark.asyncio
    async def test_idempotent_for_same_ledger_state(self, verifier, make_transaction, signature, sender_wallet):
        with patch(RPC_CALL, new_callable=AsyncMock) as mock_rpc:
            mock_rpc.return_value = make_transaction()
            first = await verifier.verify(signature, sender_wallet)
            second = await verifier.verify(signature, sender_wallet)

        assert first == second
        assert mock_rpc.await_count == 2


class TestRpcCall:
    """Tests for the JSON-RPC transport."""

    @staticmethod
    def _patched_client(handler):
        real_client = httpx.AsyncClient

        def factory(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        return patch("memeforge.payments.verification.httpx.AsyncClient", side_effect=factory)

    @pytest.mark.asyncio
    async def test_returns_result_member(self):
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "ok"})

        with self._patched_client(handler):
            assert await _rpc_call("https://rpc.test.invalid", "getHealth", []) == "ok"

    @pytest.mark.asyncio
    async def test_error_member_raises(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param"}},
            )

        with self._patched_client(handler):
            with pytest.raises(PaymentVerificationError):
                await _rpc_call("https://rpc.test.invalid", "getTransaction", ["sig"])

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        def handler(request):
            return httpx.Response(503, text="unavailable")

        with self._patched_client(handler):
            with pytest.raises(httpx.HTTPStatusError):
                await _rpc_call("https://rpc.test.invalid", "getTransaction", ["sig"])
