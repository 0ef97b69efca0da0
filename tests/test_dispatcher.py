from datetime import datetime, timezone
from unittest.mock import Mock

from shadebot.services.completion_service import Classification, EdgeCaseVerdict
from shadebot.services.escalation_service import (
    CLARIFICATION_PROMPT,
    HANDOFF_MESSAGES,
    HandoffReason,
    agent_take_over,
)
from shadebot.services.flows.malla_beige import MallaBeigeFlow
from shadebot.services.flows.confeccionada import ConfeccionadaGeneralFlow
from shadebot.services.handlers.conversation import ACKNOWLEDGEMENT_REPLY, FAREWELL_REPLY, REGREETING_REPLY
from shadebot.services.handlers.fallback import APOLOGY_REPLY, NOT_UNDERSTOOD_REPLY
from shadebot.services.handlers.products import MISSING_SPEC_QUESTIONS, MISSING_SPEC_REASK
from shadebot.services.handlers.service_info import SHIPPING_REPLY
from shadebot.services.outcome import Image, Silent, Text
from shadebot.services.result import Result

USER = "5215550001111"


def send(dispatcher, text, **kwargs):
    return dispatcher.dispatch(USER, text, **kwargs)


class TestGreeting:
    def test_first_greeting_introduces_persona(self, dispatcher, store):
        outcome = send(dispatcher, "Hola")

        assert isinstance(outcome, Text)
        assert "Soy Paula" in outcome.content
        record = store.load(USER)
        assert record.state == "active"
        assert record.persona_name == "Paula"
        assert record.greeted is True
        assert record.last_bot_response == outcome.content

    def test_regreeting_inside_window_is_short(self, dispatcher, clock):
        send(dispatcher, "Hola")
        clock.advance(minutes=20)
        assert send(dispatcher, "buenas") == Text(REGREETING_REPLY)

    def test_greeting_after_window_is_full(self, dispatcher, clock):
        send(dispatcher, "Hola")
        clock.advance(hours=3)
        assert "Soy Paula" in send(dispatcher, "hola").content

    def test_persona_is_kept_across_turns(self, dispatcher, store, services, clock):
        services.settings.persona_names = "Paula,Sofía,Camila"
        send(dispatcher, "Hola")
        first = store.load(USER).persona_name
        clock.advance(hours=3)
        assert f"Soy {first}" in send(dispatcher, "hola").content


class TestSizes:
    def test_exact_catalog_size(self, dispatcher, store, completion):
        outcome = send(dispatcher, "¿Cuánto cuesta una de 3x4?")

        assert isinstance(outcome, Text)
        assert "3x4" in outcome.content
        assert "$550" in outcome.content
        record = store.load(USER)
        assert record.last_intent == "measures_exact"
        assert record.requested_size == "3x4"
        assert record.product_specs.size == "3x4"
        assert record.product_specs.product_type == "confeccionada"
        # size messages skip edge-case detection; classification sees the raw text
        completion.detect_edge_case.assert_not_called()
        assert completion.classify.call_args.args[0] == "¿Cuánto cuesta una de 3x4?"

    def test_fractional_size_offers_whole_meters(self, dispatcher):
        outcome = send(dispatcher, "una de 4.5 x 5.5")
        assert "metros enteros" in outcome.content

    def test_reference_object(self, dispatcher):
        outcome = send(dispatcher, "necesito malla para mi cochera")
        assert outcome.content.startswith("Para una cochera calculamos aproximadamente 3x6 m.")

    def test_several_sizes_in_one_message(self, dispatcher, store):
        outcome = send(dispatcher, "precio de 3x4 y 4x6")
        assert "• 3x4 m → $550" in outcome.content
        assert "• 4x6 m → $950" in outcome.content
        assert store.load(USER).last_intent == "multiple_sizes"

    def test_oversized_offers_custom_fabrication(self, dispatcher):
        outcome = send(dispatcher, "Quiero una de 10x27")
        assert "fabricar sobre medida" in outcome.content
        assert "rollo" not in outcome.content

    def test_oversized_repeated_three_times_escalates(self, dispatcher, store):
        first = send(dispatcher, "Quiero una de 10x27")
        second = send(dispatcher, "Quiero una de 10x27")
        third = send(dispatcher, "quiero una de 27x10")

        assert store.load(USER).state == "needs_human"
        assert second.content.startswith("Como te comentaba: ")
        assert second.content != first.content
        assert "27x10 m" in third.content
        assert third.content.startswith(HANDOFF_MESSAGES[HandoffReason.REPEATED_OVERSIZED][:20])
        assert store.load(USER).handoff_reason == "repeated_oversized_request"
        assert send(dispatcher, "¿hola?") == Silent(reason="needs_human")


class TestRolls:
    def test_roll_slot_filling_until_quote(self, dispatcher, store):
        asked = send(dispatcher, "precio del rollo de 4.20 x 100")
        assert "porcentaje de sombra" in asked.content
        assert store.load(USER).last_intent == "awaiting_percentage"

        quote = send(dispatcher, "al 80%")
        assert "Porcentaje de sombra: 80%" in quote.content
        record = store.load(USER)
        assert record.last_intent == "quote_ready"
        assert record.product_specs.width == 4.2

    def test_oversized_after_roll_quote_offers_a_roll(self, dispatcher, store):
        send(dispatcher, "precio del rollo de 4.20 x 100 al 80%")
        assert store.load(USER).last_intent == "quote_ready"

        outcome = send(dispatcher, "y una de 10x27?")
        assert "fabricar sobre medida" in outcome.content
        assert "rollo de 4.2 x 100 m" in outcome.content

    def test_unanswered_slot_is_rephrased_then_escalated(self, dispatcher, store):
        asked = send(dispatcher, "precio del rollo de 4.20 x 100")
        assert asked == Text(MISSING_SPEC_QUESTIONS["percentage"])

        reasked = send(dispatcher, "y el rollo?")
        assert reasked == Text(MISSING_SPEC_REASK.format(question=MISSING_SPEC_QUESTIONS["percentage"]))
        assert store.load(USER).state == "active"

        third = send(dispatcher, "y el rollo?")
        assert third.content.startswith(HANDOFF_MESSAGES[HandoffReason.AUTO_ESCALATION])
        record = store.load(USER)
        assert record.state == "needs_human"
        assert record.handoff_reason == "auto_escalation"


class TestIntentTiers:
    def test_confident_classification_is_routed(self, dispatcher, completion):
        completion.classify.return_value = Result.success(Classification(intent="shipping", confidence=0.9))
        outcome = send(dispatcher, "¿y cuánto tarda en llegar?")
        assert outcome == Text(SHIPPING_REPLY)
        completion.detect_edge_case.assert_called_once()

    def test_low_confidence_falls_through_to_generation(self, dispatcher, completion):
        completion.classify.return_value = Result.success(Classification(intent="shipping", confidence=0.5))
        outcome = send(dispatcher, "¿y cuánto tarda en llegar?")
        assert outcome == Text("Con gusto te ayudo con tu malla sombra 🌿")

    def test_quick_pattern_skips_completion(self, dispatcher, completion):
        assert send(dispatcher, "¿hacen envíos?") == Text(SHIPPING_REPLY)
        completion.classify.assert_not_called()

    def test_unintelligible_clarifies_once_then_escalates(self, dispatcher, completion, store):
        completion.detect_edge_case.return_value = Result.success(
            EdgeCaseVerdict(is_unintelligible=True, is_complex=False, confidence=0.95)
        )
        assert send(dispatcher, "asdfgh") == Text(CLARIFICATION_PROMPT)
        second = send(dispatcher, "qwerty")
        assert HANDOFF_MESSAGES[HandoffReason.UNINTELLIGIBLE] in second.content
        assert store.load(USER).state == "needs_human"

    def test_understood_turn_between_unintelligible_ones_restarts_count(self, dispatcher, completion, store):
        completion.detect_edge_case.return_value = Result.success(
            EdgeCaseVerdict(is_unintelligible=True, is_complex=False, confidence=0.95)
        )
        send(dispatcher, "Hola")
        assert send(dispatcher, "asdfgh") == Text(CLARIFICATION_PROMPT)
        assert send(dispatcher, "buenas") == Text(REGREETING_REPLY)
        assert store.load(USER).clarification_count == 0

        assert send(dispatcher, "qwerty") == Text(CLARIFICATION_PROMPT)
        assert store.load(USER).state == "active"


class TestClosingAndAcknowledging:
    def test_thanks_then_no_is_silent(self, dispatcher, store):
        send(dispatcher, "Hola")
        assert send(dispatcher, "gracias") == Text(FAREWELL_REPLY)
        assert store.load(USER).state == "closed"

        assert send(dispatcher, "no") == Silent(reason="opt_out")
        assert store.load(USER).state == "closed"

    def test_closed_conversation_reopens_on_a_question(self, dispatcher, store):
        send(dispatcher, "gracias")
        outcome = send(dispatcher, "¿Cuánto cuesta una de 3x4?")
        assert "$550" in outcome.content
        assert store.load(USER).state == "active"

    def test_second_acknowledgement_is_silent(self, dispatcher):
        send(dispatcher, "Hola")
        assert send(dispatcher, "ok") == Text(ACKNOWLEDGEMENT_REPLY)
        assert send(dispatcher, "ok") == Silent(reason="repeated_acknowledgement")


class TestEscalation:
    def test_explicit_request(self, dispatcher, store, completion):
        outcome = send(dispatcher, "quiero hablar con un asesor")
        assert outcome.content.startswith(HANDOFF_MESSAGES[HandoffReason.EXPLICIT_REQUEST])
        assert store.load(USER).state == "needs_human"
        completion.classify.assert_not_called()

    def test_frustration(self, dispatcher, store):
        send(dispatcher, "Hola")
        outcome = send(dispatcher, "no me entiendes")
        assert outcome.content.startswith(HANDOFF_MESSAGES[HandoffReason.FRUSTRATED])
        assert store.load(USER).handoff_reason == "frustrated"

    def test_needs_human_is_silent(self, dispatcher, store, completion):
        store.save(USER, {"state": "needs_human"})
        assert send(dispatcher, "hola") == Silent(reason="needs_human")
        completion.classify.assert_not_called()

    def test_fresh_takeover_is_silent(self, dispatcher, store, clock):
        agent_take_over(store, USER, clock())
        clock.advance(hours=1)
        assert send(dispatcher, "¿sigue disponible?") == Silent(reason="human_active")
        assert store.load(USER).state == "human_active"

    def test_stale_takeover_resumes_bot(self, dispatcher, store, clock):
        agent_take_over(store, USER, clock())
        clock.advance(hours=3)
        outcome = send(dispatcher, "hola?")
        assert isinstance(outcome, Text)
        record = store.load(USER)
        assert record.state == "active"
        assert record.agent_took_over_at is None

    def test_identical_response_twice_escalates(self, dispatcher, store):
        assert send(dispatcher, "¿hacen envíos?") == Text(SHIPPING_REPLY)
        second = send(dispatcher, "¿hacen envíos?")
        assert second.content.startswith(HANDOFF_MESSAGES[HandoffReason.REPEATED_RESPONSE])
        assert store.load(USER).handoff_reason == "repeated_response"


class TestGenerativeFallback:
    def test_not_understood_twice_escalates_after_hours(self, dispatcher, completion, store, clock):
        clock.now = datetime(2024, 6, 1, 18, 0, tzinfo=timezone.utc)  # Saturday
        completion.generate.return_value = Result.success("MENSAJE_NO_ENTENDIDO")
        assert send(dispatcher, "xyz") == Text(NOT_UNDERSTOOD_REPLY)
        assert store.load(USER).unknown_count == 1

        outcome = send(dispatcher, "abc def")
        assert outcome.content.startswith(HANDOFF_MESSAGES[HandoffReason.AUTO_ESCALATION])
        assert "Un asesor te responde el lunes a las 9:00" in outcome.content
        assert store.load(USER).state == "needs_human"

    def test_not_understood_once_escalates_in_business_hours(self, dispatcher, completion, store):
        completion.generate.return_value = Result.success("MENSAJE_NO_ENTENDIDO")
        outcome = send(dispatcher, "xyz")
        assert outcome == Text(HANDOFF_MESSAGES[HandoffReason.AUTO_ESCALATION])
        record = store.load(USER)
        assert record.state == "needs_human"
        assert record.handoff_reason == "auto_escalation"

    def test_generation_failure_apologizes(self, dispatcher, completion, store):
        completion.generate.return_value = Result.failure("timeout", "llm_error")
        assert send(dispatcher, "xyz") == Text(APOLOGY_REPLY)
        record = store.load(USER)
        assert record.unknown_count == 0
        assert record.state == "active"

    def test_fallback_gets_raw_message_and_persona(self, dispatcher, completion):
        send(dispatcher, "Qué tal la MAYA pa mi jardín")
        messages = completion.generate.call_args.args[0]
        assert "Eres Paula" in messages[0]["content"]
        assert messages[1]["content"] == "Qué tal la MAYA pa mi jardín"


class TestProducts:
    def test_product_with_image(self, dispatcher):
        outcome = send(dispatcher, "fotos de la confeccionada")
        assert isinstance(outcome, Image)
        assert outcome.image_url == "https://cdn.example.com/catalog/malla-confeccionada.jpg"

    def test_catalog_overview(self, dispatcher):
        outcome = send(dispatcher, "¿qué productos tienen?")
        assert "Malla antimaleza" in outcome.content

    def test_generic_measures(self, dispatcher):
        outcome = send(dispatcher, "¿qué medidas tienen?")
        assert "• 4x6 m → $950" in outcome.content


class TestCampaignFlows:
    def test_malla_beige_flow(self, dispatcher, store):
        intro = send(dispatcher, "Hola", campaign_ref="malla_beige")
        assert intro == Text(MallaBeigeFlow.initial_message)
        assert store.load(USER).campaign_ref == "malla_beige"

        price = send(dispatcher, "¿cuánto cuesta?")
        assert "$450" in price.content
        assert store.load(USER).last_intent == "malla_beige_price"

    def test_confeccionada_flow_quotes_sizes(self, dispatcher):
        intro = send(dispatcher, "Hola", campaign_ref="confeccionada_general")
        assert intro == Text(ConfeccionadaGeneralFlow.initial_message)
        assert "$950" in send(dispatcher, "4x6").content

    def test_unknown_campaign_uses_general_chain(self, dispatcher):
        outcome = send(dispatcher, "Hola", campaign_ref="black_friday")
        assert "Soy Paula" in outcome.content


class TestRobustness:
    def test_empty_message_is_silent(self, dispatcher, store):
        assert send(dispatcher, "   ") == Silent(reason="empty_message")

    def test_unexpected_error_becomes_apology(self, dispatcher, services):
        services.store = Mock()
        services.store.load.side_effect = RuntimeError("db gone")
        assert send(dispatcher, "Hola") == Text(APOLOGY_REPLY)

    def test_store_write_failure_does_not_break_turn(self, dispatcher, services):
        real_store = services.store
        failing = Mock(wraps=real_store)
        failing.save.return_value = Result.failure("locked", "store_error")
        services.store = failing
        outcome = send(dispatcher, "Hola")
        assert "Soy Paula" in outcome.content
