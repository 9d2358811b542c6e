"""Asset URL resolution for rendered Markdown.

Relative image references in a repository file are rewritten to absolute
``raw.githubusercontent.com`` URLs, resolved against the directory of the
file being viewed.
"""

from __future__ import annotations

import re

from markview.toc import iter_fenced_lines, slugify

RAW_CONTENT_BASE = "https://raw.githubusercontent.com"

_ABSOLUTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

# ![alt](src "optional title"), src optionally wrapped in <...>
_MD_IMAGE_RE = re.compile(
    r"(?P<head>!\[[^\]]*\]\(\s*)"
    r"(?P<open><?)(?P<src>[^)\s>]+)(?P<close>>?)"
    r"(?P<tail>(?:\s+\"[^\"]*\")?\s*\))"
)
_HTML_IMG_RE = re.compile(
    r"(?P<head><img\b[^>]*?\bsrc\s*=\s*)(?P<quote>[\"'])(?P<src>.*?)(?P=quote)",
    re.IGNORECASE,
)


def is_absolute_url(url: str) -> bool:
    """``http://``, ``https://`` (any case) or protocol-relative ``//``."""
    return bool(_ABSOLUTE_URL_RE.match(url)) or url.startswith("//")


def _join(directory: str, path: str) -> str:
    return f"{directory}/{path}" if directory else path


def resolve_relative_path(src: str, current_file_path: str) -> str:
    """Resolve ``src`` against the directory containing ``current_file_path``.

    Returns a repository-relative path without a leading slash.
    """
    directory = "/".join(current_file_path.split("/")[:-1])

    if src.startswith("./"):
        return _join(directory, src[2:])

    if src.startswith("../"):
        parts = directory.split("/") if directory else []
        for segment in src.split("/"):
            if segment == "..":
                if parts:
                    parts.pop()
            else:
                parts.append(segment)
        return "/".join(parts)

    if src.startswith("/"):
        # Repository-root relative
        return src[1:]

    return _join(directory, src)


def transform_image_url(
    src: str,
    owner: str,
    repo: str,
    current_file_path: str,
    ref: str = "main",
) -> str:
    """Rewrite a (possibly relative) asset URL to an absolute raw-content URL.

    Absolute URLs pass through unchanged.
    """
    if is_absolute_url(src):
        return src
    resolved = resolve_relative_path(src, current_file_path)
    return f"{RAW_CONTENT_BASE}/{owner}/{repo}/{ref}/{resolved}"


def generate_heading_id(text: str) -> str:
    """Anchor id for a rendered heading. Same rule as the TOC ids."""
    return slugify(text)


def _should_rewrite(src: str) -> bool:
    return bool(src) and not src.startswith(("#", "data:", "mailto:"))


def rewrite_markdown_assets(
    markdown: str,
    owner: str,
    repo: str,
    current_file_path: str,
    ref: str = "main",
) -> str:
    """Rewrite every image target in ``markdown`` through ``transform_image_url``.

    Handles Markdown image syntax and HTML ``<img src=...>``. Fenced code
    blocks are left untouched.
    """

    def transform(src: str) -> str:
        if not _should_rewrite(src):
            return src
        return transform_image_url(src, owner, repo, current_file_path, ref)

    def replace_md(match: re.Match[str]) -> str:
        return (
            f"{match['head']}{match['open']}{transform(match['src'])}"
            f"{match['close']}{match['tail']}"
        )

    def replace_html(match: re.Match[str]) -> str:
        quote = match["quote"]
        return f"{match['head']}{quote}{transform(match['src'])}{quote}"

    out: list[str] = []
    for line, in_code in iter_fenced_lines(markdown, keepends=True):
        if not in_code:
            line = _MD_IMAGE_RE.sub(replace_md, line)
            line = _HTML_IMG_RE.sub(replace_html, line)
        out.append(line)
    return "".join(out)
