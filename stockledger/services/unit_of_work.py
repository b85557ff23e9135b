"""Transaction boundary for ledger operations.

Every public operation that mutates layers, consumptions or balances runs
inside ``unit_of_work()``. Calls nest: only the outermost block commits, and
any exception escaping any level rolls back the whole session and re-raises.
Inner blocks just flush so later steps see earlier writes.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from ..extensions import db

logger = logging.getLogger(__name__)

_DEPTH_KEY = "stockledger.unit_of_work_depth"


@contextmanager
def unit_of_work(session=None) -> Iterator:
    session = session or db.session
    depth = session.info.get(_DEPTH_KEY, 0)
    session.info[_DEPTH_KEY] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
        else:
            session.flush()
    except Exception as exc:
        if depth == 0:
            logger.warning(f"Rolling back ledger unit of work: {exc}")
            session.rollback()
        raise
    finally:
        session.info[_DEPTH_KEY] = depth
