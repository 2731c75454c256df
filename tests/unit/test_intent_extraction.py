"""Unit tests for the fallback extractor, reply parser and intent gateway."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from voicepay.errors import IntentExtractionFailed, NetworkError, Timeout
from voicepay.intent import IntentExtractionGateway, build_messages, extract_intent_fallback, parse_intent_reply
from voicepay.intent.engines import CloudflareAIEngine, OpenAIChatEngine
from voicepay.payments import DEMO_CONTACTS

ALICE = DEMO_CONTACTS["alice"]


@pytest.mark.unit
class TestFallbackExtractor:
    """Keyword and regex extraction without a language model."""

    def test_send_to_address(self):
        intent = extract_intent_fallback("Send 50 USDC to 0x1234567890123456789012345678901234567890")

        assert intent.action == "send"
        assert intent.amount == Decimal("50")
        assert intent.recipient == "0x1234567890123456789012345678901234567890"
        assert intent.confirmation_required is True
        assert intent.source == "fallback"

    def test_balance_query(self):
        intent = extract_intent_fallback("What's my balance?")

        assert intent.action == "check_balance"
        assert intent.amount == Decimal("0")
        assert intent.confirmation_required is False

    def test_how_much_is_a_balance_query(self):
        assert extract_intent_fallback("How much do I have").action == "check_balance"

    def test_split_with_participants(self):
        intent = extract_intent_fallback("Split 100 USDC with Bob and Charlie")

        assert intent.action == "split"
        assert intent.amount == Decimal("100")
        assert [p.identifier for p in intent.participants] == ["Bob", "Charlie"]

    @pytest.mark.parametrize("text", ["Show transaction history", "my last transactions"])
    def test_history_query(self, text):
        intent = extract_intent_fallback(text)
        assert intent.action == "view_history"
        assert intent.confirmation_required is False

    def test_balance_wins_over_history(self):
        assert extract_intent_fallback("balance and history").action == "check_balance"

    def test_cancel(self):
        intent = extract_intent_fallback("cancel that")
        assert intent.action == "cancel"
        assert intent.confirmation_required is True

    def test_pay_bill(self):
        intent = extract_intent_fallback("Pay the electricity bill 75 dollars")
        assert intent.action == "pay_bill"
        assert intent.amount == Decimal("75")

    def test_named_recipient(self):
        intent = extract_intent_fallback("Transfer 12.5 USDC to Bob")
        assert intent.action == "send"
        assert intent.amount == Decimal("12.5")
        assert intent.recipient == "Bob"

    def test_no_action_word_defaults_to_send(self):
        intent = extract_intent_fallback("20 for Alice")
        assert intent.action == "send"
        assert intent.recipient == "Alice"
        assert intent.amount == Decimal("20")

    def test_missing_amount_is_zero(self):
        intent = extract_intent_fallback("Send money to Alice")
        assert intent.amount == Decimal("0")


@pytest.mark.unit
class TestParseIntentReply:
    """Strict decode, then embedded block, then give up."""

    def test_bare_json(self):
        payload = parse_intent_reply('{"action": "send", "amount": 50, "recipient": "alice"}')

        assert payload.action == "send"
        assert payload.amount == Decimal("50")
        assert payload.recipient == "alice"
        assert payload.confirmation_required is True

    def test_json_embedded_in_prose(self):
        reply = 'Sure! Here is the intent:\n{"action": "check_balance", "confirmationRequired": false}\nDone.'
        payload = parse_intent_reply(reply)

        assert payload.action == "check_balance"
        assert payload.confirmation_required is False

    @pytest.mark.parametrize("reply", ["", "   ", "I could not understand that", "{not json}"])
    def test_unparseable_reply(self, reply):
        assert parse_intent_reply(reply) is None

    def test_null_recipient(self):
        payload = parse_intent_reply('{"action": "send", "amount": "5", "recipient": "null"}')
        assert payload.recipient is None

    def test_amount_with_currency_formatting(self):
        payload = parse_intent_reply('{"action": "send", "amount": "$1,000.50"}')
        assert payload.amount == Decimal("1000.50")

    def test_string_participants(self):
        payload = parse_intent_reply('{"action": "split", "amount": 30, "participants": ["bob", "carol"]}')
        assert [p.identifier for p in payload.participants] == ["bob", "carol"]

    def test_only_false_disables_confirmation(self):
        payload = parse_intent_reply('{"action": "send", "confirmationRequired": "no"}')
        assert payload.confirmation_required is True

    def test_to_intent_marks_ai_source(self):
        intent = parse_intent_reply('{"action": "send", "amount": 5}').to_intent("send 5")
        assert intent.source == "ai"
        assert intent.original_command == "send 5"
        assert intent.currency == "USDC"


@pytest.mark.unit
class TestIntentExtractionGateway:
    """Engine first, fallback on any engine failure."""

    @pytest.mark.asyncio
    async def test_engine_reply_used(self):
        engine = AsyncMock()
        engine.complete.return_value = json.dumps({"action": "send", "amount": 50, "recipient": "Alice"})
        gateway = IntentExtractionGateway(engine=engine, contacts=DEMO_CONTACTS)

        intent = await gateway.extract("Send 50 to Alice")

        assert intent.source == "ai"
        assert intent.recipient == ALICE
        engine.complete.assert_awaited_once_with(build_messages("Send 50 to Alice"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [Timeout(), NetworkError(), IntentExtractionFailed("boom")])
    async def test_engine_failure_falls_back(self, error):
        engine = AsyncMock()
        engine.complete.side_effect = error
        gateway = IntentExtractionGateway(engine=engine, contacts=DEMO_CONTACTS)

        intent = await gateway.extract("Send 50 USDC to Alice")

        assert intent.source == "fallback"
        assert intent.action == "send"
        assert intent.recipient == ALICE

    @pytest.mark.asyncio
    async def test_unexpected_engine_error_falls_back(self):
        engine = AsyncMock()
        engine.complete.side_effect = AttributeError("engine bug")
        gateway = IntentExtractionGateway(engine=engine)

        intent = await gateway.extract("What's my balance?")

        assert intent.source == "fallback"
        assert intent.action == "check_balance"

    @pytest.mark.asyncio
    async def test_null_openai_content_falls_back(self):
        engine = OpenAIChatEngine(api_key="sk-test")
        gateway = IntentExtractionGateway(engine=engine)
        refusal = {"choices": [{"message": {"role": "assistant", "content": None, "refusal": "no"}}]}

        with patch("voicepay.intent.engines._post_json", AsyncMock(return_value=refusal)):
            intent = await gateway.extract("What's my balance?")

        assert intent.source == "fallback"
        assert intent.action == "check_balance"

    @pytest.mark.asyncio
    async def test_garbage_reply_falls_back(self):
        engine = AsyncMock()
        engine.complete.return_value = "I am not sure what you mean"
        gateway = IntentExtractionGateway(engine=engine)

        intent = await gateway.extract("What's my balance?")

        assert intent.source == "fallback"
        assert intent.action == "check_balance"

    @pytest.mark.asyncio
    async def test_no_engine_uses_fallback(self):
        intent = await IntentExtractionGateway().extract("Transfer 100 USDC to Bob")
        assert intent.source == "fallback"
        assert intent.recipient == "Bob"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "<>"])
    async def test_empty_text_rejected(self, text):
        with pytest.raises(IntentExtractionFailed):
            await IntentExtractionGateway().extract(text)

    @pytest.mark.asyncio
    async def test_participant_addresses_resolved(self):
        gateway = IntentExtractionGateway(contacts={"Bob": DEMO_CONTACTS["bob"]})
        intent = await gateway.extract("Split 100 USDC with Bob and Charlie")

        assert intent.participants[0].address == DEMO_CONTACTS["bob"]
        assert intent.participants[1].address is None


@pytest.mark.unit
class TestCloudflareReplyText:

    def test_response_field(self):
        assert CloudflareAIEngine.reply_text({"result": {"response": "hello"}}) == "hello"

    def test_structured_response_serialized(self):
        text = CloudflareAIEngine.reply_text({"result": {"response": {"action": "send"}}})
        assert json.loads(text) == {"action": "send"}

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        engine = CloudflareAIEngine(api_key=None, account_id="acct")
        with pytest.raises(IntentExtractionFailed):
            await engine.complete(build_messages("hi"))


@pytest.mark.unit
class TestOpenAIChatEngine:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [
        {"choices": [{"message": {"content": None}}]},
        {"choices": []},
        {"error": "overloaded"},
    ])
    async def test_malformed_reply(self, result):
        engine = OpenAIChatEngine(api_key="sk-test")
        with patch("voicepay.intent.engines._post_json", AsyncMock(return_value=result)):
            with pytest.raises(IntentExtractionFailed) as exc_info:
                await engine.complete(build_messages("hi"))
        assert exc_info.value.message == "Malformed OpenAI response"

    @pytest.mark.asyncio
    async def test_reply_text_stripped(self):
        engine = OpenAIChatEngine(api_key="sk-test")
        result = {"choices": [{"message": {"content": '  {"action": "check_balance"}\n'}}]}
        with patch("voicepay.intent.engines._post_json", AsyncMock(return_value=result)):
            assert await engine.complete(build_messages("hi")) == '{"action": "check_balance"}'
