"""Content canonicalizer: grouping identity and injected-HTML transforms.

Every function here is pure: identical inputs yield byte-identical output,
which keeps markers and re-synthesis reproducible.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from .assignments import Assignment, ContentKind, GroupingStrategy

_SIGNATURE_WRAPPER_OPEN = (
    '<div style="border-top: 1px solid #e9ecef; margin-top: 30px; padding-top: 20px;">'
)
_BANNER_WRAPPER_OPEN = '<div style="margin-bottom: 20px;">'
_WRAPPER_CLOSE = "</div>"

_MARKER_SPAN = (
    '<span style="display:none;font-size:0;height:0;width:0;line-height:0;overflow:hidden;">'
    "{marker}</span>"
)

_ANCHOR_RE = re.compile(r"<a(?=[\s>])", re.IGNORECASE)
_ANCHOR_TAG_RE = re.compile(r"<a(?=[\s>])[^>]*>", re.IGNORECASE)
_HREF_RE = re.compile(r"""(?<![\w-])href\s*=\s*(?:"[^"]*"|'[^']*')""", re.IGNORECASE)
_TARGET_RE = re.compile(r"\starget\s*=", re.IGNORECASE)
_LEADING_DIV_RE = re.compile(r"^\s*<div\b[^>]*>", re.IGNORECASE)


def content_identity(
    assignment: Assignment, strategy: GroupingStrategy
) -> tuple[str | None, ...]:
    """Return the grouping key for an assignment under the given strategy."""
    key = (assignment.signature_html, assignment.banner_html, assignment.banner_id)
    if strategy == GroupingStrategy.per_principal:
        return (assignment.email.lower(), *key)
    return key


def wrap(kind: ContentKind, html: str) -> str:
    """Wrap a fragment in its presentational container."""
    if kind == ContentKind.signature:
        return f"{_SIGNATURE_WRAPPER_OPEN}{html}{_WRAPPER_CLOSE}"
    return f"{_BANNER_WRAPPER_OPEN}{html}{_WRAPPER_CLOSE}"


def inject_marker(html: str, marker: str) -> str:
    """Insert a hidden text marker just inside the leading wrapper element.

    The marker is visible text hidden by inline style rather than an HTML
    comment, so a body-content scan on the platform still finds it after
    comment-stripping normalizers.
    """
    if not marker or not marker.strip():
        raise ValueError("marker must not be empty")
    span = _MARKER_SPAN.format(marker=marker)
    opening = _LEADING_DIV_RE.match(html)
    if opening is None:
        return f"{span}{html}"
    end = opening.end()
    return f"{html[:end]}{span}{html[end:]}"


def _ensure_target(tag: str) -> str:
    if _TARGET_RE.search(tag):
        return tag
    return f'<a target="_blank"{tag[2:]}'


def rewrite_tracking_links(html: str, tracking_url: str) -> str:
    """Point every anchor at the tracking URL, or wrap the fragment in one."""
    if not _ANCHOR_RE.search(html):
        return (
            f'<a href="{tracking_url}" target="_blank" '
            f'style="display: block; text-decoration: none;">{html}</a>'
        )
    rewritten = _HREF_RE.sub(lambda _m: f'href="{tracking_url}"', html)
    return _ANCHOR_TAG_RE.sub(lambda m: _ensure_target(m.group(0)), rewritten)


def escape(html: str) -> str:
    """Escape content for a single-quoted PowerShell literal."""
    return html.replace("'", "''")


def build_tracking_url(endpoint: str, banner_id: str, email: str | None = None) -> str:
    """Click-redirect URL for a banner, optionally attributed to one address."""
    url = f"{endpoint}?banner_id={quote(banner_id, safe='')}"
    if email:
        url += f"&email={quote(email, safe='')}"
    return url


def render(
    kind: ContentKind,
    html: str,
    marker: str,
    tracking_url: str | None = None,
) -> str:
    """Full transform pipeline: tracking rewrite, wrapper, then marker."""
    body = html
    if kind == ContentKind.banner and tracking_url:
        body = rewrite_tracking_links(body, tracking_url)
    return inject_marker(wrap(kind, body), marker)
