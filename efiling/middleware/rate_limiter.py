"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.  The Limiter instance
is created in ``efiling/__init__.py`` with no default limits and a storage
backend taken from ``RATELIMIT_STORAGE_URI`` (``memory://`` for a single
process, ``redis://...`` when several workers must share counters).

Usage:
    from efiling.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WORKFLOW_LIMIT = "60/minute"
TEAM_LIMIT = "120/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Workflow routes (mark-to, sign, permissions):  60/minute
        - Team administration:                           120/minute
        - Health check:                                  exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("workflow")
    if bp:
        limiter.limit(WORKFLOW_LIMIT)(bp)

    bp = app.blueprints.get("team")
    if bp:
        limiter.limit(TEAM_LIMIT)(bp)

    app.logger.info(
        "Rate limiter configured: workflow: %s, team: %s",
        WORKFLOW_LIMIT, TEAM_LIMIT,
    )
