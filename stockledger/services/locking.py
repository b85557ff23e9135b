from flask import current_app


def lock_rows(query):
    """Apply SELECT ... FOR UPDATE unless row locking is switched off in config."""
    if current_app.config.get("LEDGER_LOCK_ROWS", True):
        return query.with_for_update()
    return query
