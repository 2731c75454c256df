"""Unit tests for intent validation, amount rules and input sanitizing."""

from decimal import Decimal

import pytest

from voicepay.config import AmountLimits
from voicepay.models import Participant, PaymentIntent
from voicepay.validation import (
    IntentValidator,
    ZERO_ADDRESS,
    check_sufficient_balance,
    format_address,
    is_valid_address,
    is_valid_transaction_hash,
    sanitize_input,
    validate_amount,
)

ADDRESS = "0x1234567890123456789012345678901234567890"


def send_intent(amount="50", recipient=ADDRESS, **kwargs) -> PaymentIntent:
    return PaymentIntent(action="send", amount=Decimal(amount), recipient=recipient, **kwargs)


@pytest.mark.unit
class TestIntentValidator:
    """Every rule is applied and every failure reported."""

    def setup_method(self):
        self.validator = IntentValidator()

    def test_valid_send(self):
        result = self.validator.validate(send_intent())
        assert result.valid is True
        assert result.errors == []

    @pytest.mark.parametrize("action", ["send", "split", "pay_bill"])
    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount_rejected(self, action, amount):
        intent = PaymentIntent(action=action, amount=Decimal(amount), recipient=ADDRESS,
                               participants=[Participant("a"), Participant("b")])
        self.validator.apply(intent)

        assert intent.is_valid is False
        assert "Amount is required and must be greater than zero" in intent.validation_errors

    @pytest.mark.parametrize("amount", ["50", "0", "99999"])
    def test_zero_address_rejected_regardless_of_amount(self, amount):
        result = self.validator.validate(send_intent(amount=amount, recipient=ZERO_ADDRESS))

        assert result.valid is False
        assert "Cannot send to zero address" in result.errors
        assert "Invalid address format" not in result.errors

    def test_zero_address_upper_case(self):
        result = self.validator.validate(send_intent(recipient="0X" + "0" * 40))
        assert "Cannot send to zero address" in result.errors

    def test_missing_recipient(self):
        result = self.validator.validate(send_intent(recipient=None))
        assert result.errors == ["Recipient address is required for send action"]

    def test_malformed_recipient(self):
        result = self.validator.validate(send_intent(recipient="Charlie"))
        assert result.errors == ["Invalid address format"]

    def test_all_errors_reported(self):
        intent = send_intent(amount="0", recipient="nobody", currency="ETH")
        result = self.validator.validate(intent)

        assert result.errors == [
            "Amount is required and must be greater than zero",
            "Invalid address format",
            "Only USDC is supported",
        ]

    def test_unknown_action(self):
        result = self.validator.validate(PaymentIntent(action="teleport"))
        assert result.errors == ["Invalid payment action"]

    @pytest.mark.parametrize("action", ["check_balance", "view_history", "cancel"])
    def test_actions_without_amount(self, action):
        assert self.validator.validate(PaymentIntent(action=action)).valid is True

    def test_split_with_two_participants(self):
        intent = PaymentIntent(action="split", amount=Decimal("100"),
                               participants=[Participant("Bob"), Participant("Charlie")])
        assert self.validator.validate(intent).valid is True

    def test_split_needs_participants(self):
        intent = PaymentIntent(action="split", amount=Decimal("100"))
        assert self.validator.validate(intent).errors == ["Participants are required for split action"]

    def test_split_needs_two_participants(self):
        intent = PaymentIntent(action="split", amount=Decimal("100"), participants=[Participant("Bob")])
        assert self.validator.validate(intent).errors == ["Split action requires at least 2 participants"]

    def test_split_participant_address_checked(self):
        intent = PaymentIntent(action="split", amount=Decimal("100"),
                               participants=[Participant("Bob", address="0xbad"), Participant("Carol")])
        assert self.validator.validate(intent).errors == ["Invalid address for participant: Bob"]

    def test_custom_limits(self):
        validator = IntentValidator(AmountLimits(min_amount=Decimal("1"), max_amount=Decimal("20"), max_decimals=2))
        assert validator.validate(send_intent(amount="25")).errors == ["Amount cannot exceed 20 USDC"]


@pytest.mark.unit
class TestAmountRules:

    @pytest.mark.parametrize("amount, expected", [
        ("0.01", (True, None)),
        ("10000", (True, None)),
        ("abc", (False, "Invalid amount format")),
        ("0", (False, "Amount must be greater than zero")),
        ("0.001", (False, "Amount must be at least 0.01 USDC")),
        ("10000.01", (False, "Amount cannot exceed 10000 USDC")),
        ("1.1234567", (False, "Amount cannot have more than 6 decimal places")),
    ])
    def test_validate_amount(self, amount, expected):
        assert validate_amount(amount) == expected

    def test_balance_boundary_insufficient(self):
        sufficient, error = check_sufficient_balance(Decimal("100.00"), Decimal("99.995"), Decimal("0.01"))
        assert sufficient is False
        assert "Insufficient balance" in error

    def test_balance_boundary_sufficient(self):
        assert check_sufficient_balance(Decimal("100.00"), Decimal("99.98"), Decimal("0.01")) == (True, None)

    def test_exact_balance_plus_buffer_is_sufficient(self):
        assert check_sufficient_balance(Decimal("100.00"), Decimal("99.99"), Decimal("0.01"))[0] is True


@pytest.mark.unit
class TestAddressAndText:

    def test_address_shape(self):
        assert is_valid_address(ADDRESS)
        assert not is_valid_address(ADDRESS[:-1])
        assert not is_valid_address("1234567890123456789012345678901234567890ab")
        assert not is_valid_address(None)

    def test_transaction_hash_shape(self):
        assert is_valid_transaction_hash("0x" + "ab" * 32)
        assert not is_valid_transaction_hash("0x" + "ab" * 31)

    def test_format_address(self):
        assert format_address(ADDRESS) == "0x1234...7890"
        assert format_address("") == ""

    def test_sanitize_input(self):
        assert sanitize_input("  <b>send</b> 5\x00 USDC\n ") == "bsend/b 5 USDC"
