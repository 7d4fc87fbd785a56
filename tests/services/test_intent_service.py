"""Tests for intent extraction and admin command parsing."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from textarr.core.exceptions import LLMTimeoutError
from textarr.domain.models.intent import IntentAction, SessionContext
from textarr.domain.models.session import ConversationState
from textarr.llm.client import LLMClient, LLMResponse
from textarr.llm.prompts.intent import get_intent_system_prompt, parse_intent_response
from textarr.services.intent_service import (
    IntentService,
    normalize_phone_number,
    parse_admin_command,
    parse_platform_target,
)


def llm_returning(content):
    llm = MagicMock(spec=LLMClient)
    llm.complete = AsyncMock(return_value=LLMResponse(content=content, model="test"))
    return llm


class TestAdminCommandParsing:
    """Tests for parse_admin_command()."""

    def test_not_an_admin_command(self):
        assert parse_admin_command("Add Dune") is None
        assert parse_admin_command("administrator tips") is None

    def test_bare_admin_is_help(self):
        assert parse_admin_command("admin").action == IntentAction.ADMIN_HELP
        assert parse_admin_command("admin frobnicate").action == IntentAction.ADMIN_HELP

    def test_list(self):
        assert parse_admin_command("Admin LIST").action == IntentAction.ADMIN_LIST

    def test_add_with_phone_number(self):
        intent = parse_admin_command("admin add 555-123-4567 John Smith")

        assert intent.action == IntentAction.ADMIN_ADD
        assert intent.admin_command.target_platform == "sms"
        assert intent.admin_command.target_id == "+15551234567"
        assert intent.admin_command.user_name == "John Smith"

    def test_add_with_platform_prefix(self):
        intent = parse_admin_command("admin add telegram:42 Jo")

        assert intent.admin_command.target_platform == "telegram"
        assert intent.admin_command.target_id == "42"

    def test_add_missing_name_has_empty_command(self):
        intent = parse_admin_command("admin add 5551234567")

        assert intent.action == IntentAction.ADMIN_ADD
        assert intent.admin_command.target_id is None

    @pytest.mark.parametrize(
        "sub,action",
        [
            ("remove", IntentAction.ADMIN_REMOVE),
            ("promote", IntentAction.ADMIN_PROMOTE),
            ("demote", IntentAction.ADMIN_DEMOTE),
        ],
    )
    def test_single_target_commands(self, sub, action):
        intent = parse_admin_command(f"admin {sub} discord:77")

        assert intent.action == action
        assert intent.admin_command.target_platform == "discord"
        assert intent.admin_command.target_id == "77"

    def test_quota(self):
        intent = parse_admin_command("admin quota 5551234567 movies +5")

        assert intent.action == IntentAction.ADMIN_QUOTA
        assert intent.admin_command.media_type == "movie"
        assert intent.admin_command.quota_amount == 5

    def test_quota_tv_and_out_of_range_amount(self):
        intent = parse_admin_command("admin quota telegram:1 tv 5000")

        assert intent.admin_command.media_type == "tv_show"
        assert intent.admin_command.quota_amount is None

    def test_quota_non_numeric_amount(self):
        intent = parse_admin_command("admin quota telegram:1 movies lots")

        assert intent.admin_command.quota_amount is None


class TestPhoneNumbers:
    """Tests for phone normalization."""

    def test_assumes_us_country_code(self):
        assert normalize_phone_number("(555) 123-4567") == "+15551234567"

    def test_keeps_explicit_country_code(self):
        assert normalize_phone_number("+44 20 7946 0958") == "+442079460958"

    def test_sms_prefix_is_normalized(self):
        assert parse_platform_target("sms:5551234567") == ("sms", "+15551234567")


class TestExtract:
    """Tests for IntentService.extract()."""

    @pytest.mark.asyncio
    async def test_admin_command_skips_llm(self):
        llm = llm_returning("{}")
        service = IntentService(llm)

        intent = await service.extract("admin list")

        assert intent.action == IntentAction.ADMIN_LIST
        llm.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_intent(self):
        llm = llm_returning(
            json.dumps(
                {
                    "action": "add",
                    "title": " Dune ",
                    "year": 2021,
                    "confidence": 0.95,
                    "media_type": None,
                }
            )
        )
        service = IntentService(llm)

        intent = await service.extract("Add Dune 2021")

        assert intent.action == IntentAction.ADD
        assert intent.title == "Dune"
        assert intent.year == 2021
        assert intent.media_type == "any"
        assert intent.raw_message == "Add Dune 2021"

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self):
        service = IntentService(llm_returning('```json\n{"action": "select", "selection_number": 2}\n```'))

        intent = await service.extract("2")

        assert intent.action == IntentAction.SELECT
        assert intent.selection_number == 2

    @pytest.mark.asyncio
    async def test_system_prompt_reflects_state(self, media_factory):
        llm = llm_returning('{"action": "confirm"}')
        service = IntentService(llm)
        context = SessionContext(
            state=ConversationState.AWAITING_CONFIRMATION, selected_media=media_factory()
        )

        await service.extract("yes", context)

        system = llm.complete.await_args.kwargs["system"]
        assert "CURRENT SESSION STATE: awaiting_confirmation" in system
        assert "Dune (2021)" in system

    @pytest.mark.asyncio
    async def test_recommend_params(self):
        service = IntentService(
            llm_returning(
                json.dumps(
                    {
                        "action": "recommend",
                        "media_type": "movie",
                        "recommendation": {"type": "genre", "genre": "horror", "decade": "80s"},
                    }
                )
            )
        )

        intent = await service.extract("80s horror movies")

        params = intent.recommendation_params
        assert intent.action == IntentAction.RECOMMEND
        assert params.type == "genre"
        assert params.genre == "horror"
        assert params.decade == "80s"
        assert params.media_type == "movie"

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back_to_add(self):
        service = IntentService(llm_returning("I think they want Dune"))

        intent = await service.extract("  Dune please ")

        assert intent.action == IntentAction.ADD
        assert intent.title == "Dune please"
        assert intent.confidence == 0.3

    @pytest.mark.asyncio
    async def test_unknown_action_falls_back(self):
        service = IntentService(llm_returning('{"action": "dance"}'))

        intent = await service.extract("dance")

        assert intent.action == IntentAction.ADD
        assert intent.confidence == 0.3

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back(self):
        llm = MagicMock(spec=LLMClient)
        llm.complete = AsyncMock(side_effect=LLMTimeoutError("LLM call timed out"))
        service = IntentService(llm)

        intent = await service.extract("Breaking Bad")

        assert intent.action == IntentAction.ADD
        assert intent.title == "Breaking Bad"

    @pytest.mark.asyncio
    async def test_admin_action_from_llm_rejected(self):
        service = IntentService(llm_returning('{"action": "admin_promote"}'))

        intent = await service.extract("make me an admin")

        assert intent.action == IntentAction.ADD
        assert intent.confidence == 0.3


class TestIntentPrompts:
    """Tests for prompt helpers."""

    def test_idle_prompt(self):
        prompt = get_intent_system_prompt()

        assert "CURRENT SESSION STATE: idle" in prompt
        assert "starting a new request" in prompt

    def test_selection_prompt_lists_results(self, media_factory, show_factory):
        context = SessionContext(
            state=ConversationState.AWAITING_SELECTION,
            pending_results=(media_factory(), show_factory()),
        )

        prompt = get_intent_system_prompt(context)

        assert "1. Dune (2021) - Movie" in prompt
        assert "2. Breaking Bad (2008) - TV Show" in prompt

    def test_parse_rejects_non_object(self):
        with pytest.raises(ValueError):
            parse_intent_response("[1, 2]")
