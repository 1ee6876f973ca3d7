from .trends import ewma_by_session, prepare_history, trend

__all__ = ["ewma_by_session", "prepare_history", "trend"]
