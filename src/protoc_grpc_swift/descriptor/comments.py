"""Rendering of source comments attached to descriptor locations."""

from __future__ import annotations

from typing import Optional

from google.protobuf import descriptor_pb2


def _prefix_lines(text: str, prefix: str) -> str:
    lines = text.split("\n")
    # protoc comments always end with a newline.
    if lines and lines[-1] == "":
        lines.pop()
    return "".join(f"{prefix}{line}\n" for line in lines)


def as_source_comment(
    location: descriptor_pb2.SourceCodeInfo.Location,
    comment_prefix: str,
    leading_detached_prefix: Optional[str] = None,
) -> str:
    """Render the comments of a location, one prefixed line per comment line.

    Leading detached comments are only included when a prefix for them is
    given; each one is followed by a blank line.
    """
    result = ""

    if leading_detached_prefix is not None:
        for detached in location.leading_detached_comments:
            result += _prefix_lines(detached, leading_detached_prefix)
            result += "\n"

    if location.leading_comments:
        result += _prefix_lines(location.leading_comments, comment_prefix)

    if location.trailing_comments:
        if location.leading_comments:
            result += f"{comment_prefix}\n"
        result += _prefix_lines(location.trailing_comments, comment_prefix)

    return result
