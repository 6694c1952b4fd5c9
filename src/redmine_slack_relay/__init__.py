"""Redmine to Slack relay.

Polls Redmine for newly created issues and posts them to Slack:
- configuration loaded from the environment and `.env`
- structured logging
- a persisted creation-time watermark so restarts neither re-post nor drop issues
"""

__version__ = "0.1.0"

from redmine_slack_relay.relay.config import RelaySettings

__all__ = ["__version__", "RelaySettings"]
