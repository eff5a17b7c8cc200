from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from apsync.domain.shared.error import ValidationError


def build_url(base: str, **params: str | None) -> str:
    """Append query parameters to ``base``, dropping ``None`` values.

    Parameters already present on ``base`` are kept; new ones win on conflict.
    """
    parts = urlsplit(base)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update({k: v for k, v in params.items() if v is not None})
    return urlunsplit(parts._replace(query=urlencode(query)))


def require_http_url(value: str, *, field: str) -> str:
    """Reject anything but an absolute http(s) URL."""
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationError(f"{field} must be an absolute http(s) URL", field=field)
    return value
