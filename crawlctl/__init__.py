"""Control-plane tooling for a remote crawling service.

The package bundles the event backfill pipeline (:mod:`crawlctl.backfill`),
dead-letter recovery (:mod:`crawlctl.deadletters`), the HTTP gateway used to
reach the crawler (:mod:`crawlctl.gateway`) and the ``crawlctl`` command
line (:mod:`crawlctl.cli`).
"""

from __future__ import annotations

__version__ = "0.1.0"
