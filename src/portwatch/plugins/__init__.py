"""Alert destination plugins.

Each subpackage implements the AlertDestination Protocol for one
notification service. The monitoring core never imports a plugin directly;
destinations are constructed in ``portwatch.__main__`` and injected into the
router.
"""
