def safe_decode(body: bytes, limit: int = 2048) -> str:
    """Render a backend body for log lines without failing on binary data."""
    text = body[:limit].decode("utf-8", errors="replace")
    if len(body) > limit:
        text += f"... ({len(body)} bytes)"
    return text
