"""
Tests for message handler validation and instance helpers.
"""

import pytest

from lti_registry.models import MessageHandlerModel, ResourceHandlerModel
from lti_registry.services.message_handler_service import (
    save_message_handler,
    validate_message_handler,
)


@pytest.fixture
def subject() -> MessageHandlerModel:
    return MessageHandlerModel(
        message_type="message_type",
        launch_path="https://samplelaunch/blti",
        resource_handler=ResourceHandlerModel(resource_type_code="code", name="resource name"),
    )


class TestValidations:
    def test_valid_handler_has_no_errors(self, subject):
        assert validate_message_handler(subject) == {}

    def test_requires_the_message_type(self, subject):
        subject.message_type = None
        errors = validate_message_handler(subject)
        assert errors["message_type"][0] == "can't be blank"

    def test_requires_the_launch_path(self, subject):
        subject.launch_path = None
        errors = validate_message_handler(subject)
        assert errors["launch_path"][0] == "can't be blank"

    def test_blank_strings_count_as_missing(self, subject):
        subject.message_type = "   "
        subject.launch_path = ""
        errors = validate_message_handler(subject)
        assert errors["message_type"] == ["can't be blank"]
        assert errors["launch_path"] == ["can't be blank"]

    def test_requires_an_absolute_launch_path(self, subject):
        subject.launch_path = "launch_path"
        errors = validate_message_handler(subject)
        assert errors["launch_path"] == ["is not a valid URL"]

    def test_requires_a_resource_handler(self, subject):
        subject.resource_handler = None
        errors = validate_message_handler(subject)
        assert errors["resource_handler"][0] == "can't be blank"

    async def test_invalid_handler_is_not_persisted(self, async_session):
        handler = MessageHandlerModel(message_type="basic-lti-launch-request")

        errors = await save_message_handler(async_session, handler)

        assert set(errors) == {"launch_path", "resource_handler"}
        assert handler.id is None

    async def test_valid_handler_is_persisted(self, async_session, create_resource_handler):
        resource_handler = await create_resource_handler()
        handler = MessageHandlerModel(
            message_type="basic-lti-launch-request",
            launch_path="https://samplelaunch/blti",
            resource_handler=resource_handler,
        )

        errors = await save_message_handler(async_session, handler)

        assert errors == {}
        assert handler.id is not None


class TestValidResourceUrl:
    @pytest.fixture
    def handler(self) -> MessageHandlerModel:
        return MessageHandlerModel(
            message_type="basic-lti-launch-request", launch_path="https://samplelaunch/blti"
        )

    def test_false_when_domain_does_not_match(self, handler):
        assert handler.valid_resource_url("http://www.banana.com/launch") is False

    def test_true_when_url_extends_launch_path(self, handler):
        assert handler.valid_resource_url(f"{handler.launch_path}/my-launch") is True

    def test_true_for_the_launch_path_itself(self, handler):
        assert handler.valid_resource_url(handler.launch_path) is True

    def test_false_for_other_host_with_same_path(self, handler):
        assert handler.valid_resource_url("https://other-host/blti/my-launch") is False

    def test_false_when_host_only_contains_launch_host(self, handler):
        assert handler.valid_resource_url("https://samplelaunch.evil.com/blti/x") is False

    def test_false_for_different_scheme(self, handler):
        assert handler.valid_resource_url("http://samplelaunch/blti/x") is False

    def test_false_for_different_port(self, handler):
        assert handler.valid_resource_url("https://samplelaunch:8443/blti/x") is False

    def test_explicit_default_port_matches_implicit(self, handler):
        assert handler.valid_resource_url("https://samplelaunch:443/blti/x") is True

    def test_implicit_port_matches_explicit_default(self):
        handler = MessageHandlerModel(
            message_type="basic-lti-launch-request", launch_path="http://samplelaunch:80/blti"
        )

        assert handler.valid_resource_url("http://samplelaunch/blti/x") is True
        assert handler.valid_resource_url("http://samplelaunch:443/blti/x") is False

    def test_false_when_path_only_shares_a_prefix_string(self, handler):
        assert handler.valid_resource_url("https://samplelaunch/bltiother") is False

    def test_false_outside_launch_path(self, handler):
        assert handler.valid_resource_url("https://samplelaunch/admin") is False

    def test_host_comparison_ignores_case(self, handler):
        assert handler.valid_resource_url("https://SampleLaunch/blti/x") is True

    def test_false_for_garbage(self, handler):
        assert handler.valid_resource_url("not a url") is False
        assert handler.valid_resource_url("https://samplelaunch:notaport/blti") is False


class TestResourceCodes:
    async def test_returns_three_identifying_lti_codes(
        self, product_family, create_message_handler
    ):
        handler = await create_message_handler()

        assert handler.resource_codes() == {
            "product_code": product_family.product_code,
            "vendor_code": product_family.vendor_code,
            "resource_type_code": handler.resource_handler.resource_type_code,
        }

    async def test_asset_string(self, create_message_handler):
        handler = await create_message_handler()
        assert handler.asset_string == f"lti/message_handler_{handler.id}"
