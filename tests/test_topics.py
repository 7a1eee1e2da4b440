"""Topic naming tests — prefix derivation and routing helpers."""

import pytest

from todobridge.bridge.topics import (
    command_name,
    derive_prefix,
    event_topic,
    response_topic,
    subscription_pattern,
)


@pytest.mark.parametrize(
    "pattern, expected",
    [
        ("blazor-net-app/#", "blazor-net-app"),
        ("factory/+/command", "factory"),
        ("  plant-7  /#", "plant-7"),
        ("todos#", "todos"),
        ("single", "single"),
    ],
)
def test_derive_prefix(pattern, expected):
    assert derive_prefix(pattern) == expected


@pytest.mark.parametrize("pattern", ["", "#", "+/#", "/leading/#", "   "])
def test_unusable_pattern_falls_back_to_default(pattern):
    assert derive_prefix(pattern) == "blazor-net-app"


def test_command_name_is_lowercased():
    assert command_name("app", "app/command/GetAll") == "getall"


def test_non_command_topics_are_ignored():
    assert command_name("app", "app/response/c1") is None
    assert command_name("app", "app/todo/created") is None
    assert command_name("app", "other/command/create") is None


def test_response_topic_uses_correlation_id():
    assert response_topic("app", "c1") == "app/response/c1"
    assert response_topic("app", None) == "app/response"
    assert response_topic("app", "") == "app/response"


def test_subscription_and_event_topics():
    assert subscription_pattern("app") == "app/*"
    assert event_topic("app", "updatedpartial") == "app/todo/updatedpartial"
