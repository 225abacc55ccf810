"""
Slack integration: message model, local store, Web API client, token resolution.
"""
from brain.services.slack.api_client import (
    SlackApiClient,
    SlackApiError,
    SlackApiUnavailableError,
)
from brain.services.slack.credentials import SlackCredentialStore
from brain.services.slack.models import SlackMessage
from brain.services.slack.store import SlackMessageStore

__all__ = [
    "SlackApiClient",
    "SlackApiError",
    "SlackApiUnavailableError",
    "SlackCredentialStore",
    "SlackMessage",
    "SlackMessageStore",
]
