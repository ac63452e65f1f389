import asyncio
import json

import pytest

from saltcore.pipeline.errors import InvalidRequestError, ValidationExhaustedError
from saltcore.pipeline.writing.writing import WritingPipeline, COMMUNICATION_TYPES


class TestWritingPipeline:
    def test_research(self, make_manager, stub_vendor):
        vendor = stub_vendor(replies=["Historical context..."])
        result = asyncio.run(WritingPipeline(make_manager(openrouter=vendor)).research("The prodigal son"))

        assert result == "Historical context..."
        assert "The prodigal son" in vendor.chat_requests[0].messages[-1]["content"]

    def test_communication_joins_key_points(self, make_manager, stub_vendor):
        vendor = stub_vendor(replies=["Dear church family..."])
        draft = asyncio.run(WritingPipeline(make_manager(openrouter=vendor)).communication_draft(
            "email-newsletter", "Fall retreat", ["Oct 3", "Lake camp"], "warm", "members",
        ))

        assert draft == "Dear church family..."
        assert "Oct 3, Lake camp" in vendor.chat_requests[0].messages[-1]["content"]

    def test_communication_rejects_unknown_type(self, make_manager, stub_vendor):
        vendor = stub_vendor()
        with pytest.raises(InvalidRequestError):
            asyncio.run(WritingPipeline(make_manager(openrouter=vendor)).communication_draft(
                "carrier-pigeon", "x", "y", "z", "w",
            ))
        assert vendor.chat_requests == []

    def test_seven_communication_types(self):
        assert len(COMMUNICATION_TYPES) == 7

    def test_suggest_backgrounds_needs_exactly_five(self, make_manager, stub_vendor):
        """
        Test: Background ideas come back as four, then five
        How: Stub answers a short list first
        Ensures: The second, valid answer is used
        """
        four = json.dumps({"suggestions": ["a", "b", "c", "d"]})
        five = json.dumps({"suggestions": [" misty forest ", "city at night", "desert", "ocean", "meadow"]})
        vendor = stub_vendor(replies=[four, five])

        result = asyncio.run(WritingPipeline(make_manager(openai=vendor)).suggest_backgrounds("Rest", "Find peace"))

        assert result == ["misty forest", "city at night", "desert", "ocean", "meadow"]
        assert len(vendor.chat_requests) == 2

    def test_suggest_backgrounds_budget_from_config(self, make_manager, stub_vendor):
        vendor = stub_vendor(replies=['{"suggestions": []}'] * 2)
        with pytest.raises(ValidationExhaustedError) as exc_info:
            asyncio.run(WritingPipeline(make_manager(openai=vendor)).suggest_backgrounds("Rest", "Find peace"))
        assert exc_info.value.attempts == 2
