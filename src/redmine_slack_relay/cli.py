"""Console entrypoint.

The CLI is implemented in `redmine_slack_relay.relay.main`.
"""

from __future__ import annotations

from redmine_slack_relay.relay.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
