"""Relay components.

- Settings loaded from the environment / .env
- Structured logging
- Redmine and Slack clients
- The fetch -> filter -> post -> advance-watermark cycle and its polling loop
"""
