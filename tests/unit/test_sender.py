"""Unit tests for notification senders"""
from unittest.mock import Mock, patch

import pytest
import requests

from notifications.adapters.sender import (
    HTTPRelaySender,
    LoggingNotificationSender,
    NotificationSendError,
    make_sender,
)
from notifications.domain.model import NotificationChannel, NotificationDelivery, TargetRole


@pytest.fixture
def delivery():
    return NotificationDelivery(user_id=1, target_role=TargetRole.CONSUMER, channel=NotificationChannel.SMS,
                                recipient="+5215555555555", subject="Hi", body="Body", delivery_id=9)


@patch("notifications.adapters.sender.requests.post")
def test_relay_returns_provider_id(mock_post, delivery):
    mock_post.return_value = Mock(status_code=202, json=Mock(return_value={"id": "msg_1"}))

    assert HTTPRelaySender("http://relay/").send(delivery) == "msg_1"

    url = mock_post.call_args[0][0]
    payload = mock_post.call_args[1]["json"]
    assert url == "http://relay/messages"
    assert payload["channel"] == "SMS"
    assert payload["reference"] == "9"


@patch("notifications.adapters.sender.requests.post")
def test_relay_rejection_is_a_send_error(mock_post, delivery):
    response = Mock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError("422")
    mock_post.return_value = response

    with pytest.raises(NotificationSendError):
        HTTPRelaySender("http://relay").send(delivery)


@patch("notifications.adapters.sender.requests.post")
def test_network_error_is_a_send_error(mock_post, delivery):
    mock_post.side_effect = requests.exceptions.ConnectTimeout("timeout")

    with pytest.raises(NotificationSendError):
        HTTPRelaySender("http://relay").send(delivery)


def test_logging_sender_invents_an_id(delivery):
    assert LoggingNotificationSender().send(delivery).startswith("log-")


def test_sender_selection():
    assert isinstance(make_sender({"relay_url": None}), LoggingNotificationSender)
    assert isinstance(make_sender({"relay_url": "http://relay"}), HTTPRelaySender)
