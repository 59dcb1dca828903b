from __future__ import annotations


def build_allowed_origins(*, frontend_base_url: str, extra_origins: str | None) -> list[str]:
    allowed: set[str] = {
        "http://localhost:3000",
        "http://localhost:3001",
    }
    if frontend_base_url:
        allowed.add(frontend_base_url.rstrip("/"))
    for origin in str(extra_origins or "").split(","):
        if origin.strip():
            allowed.add(origin.strip().rstrip("/"))
    return sorted(allowed)
