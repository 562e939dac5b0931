import nh3


def sanitize_html(raw: str) -> str:
    """Return markup that is safe to inject: scripts, event handlers and unsafe urls removed."""
    if not raw:
        return ""
    return nh3.clean(raw)
