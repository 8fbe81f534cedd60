#!/usr/bin/env python3
import json
import os
import sys
import urllib.request

SERVICE_URL = os.getenv("MYTHBUSTER_HEALTH_URL", "http://localhost:8001/health")

REQUIRED_KEYS = ["ok", "service", "version", "provider", "cache", "quota"]
QUOTA_FEATURES = [
    "myth_verification",
    "lens_research",
    "source_analysis",
    "insight_synthesis",
    "tracks_generation",
    "track_myth",
    "game_question",
    "mini_myths",
]


def fetch_json(url: str):
    with urllib.request.urlopen(url, timeout=6) as f:
        return json.loads(f.read().decode("utf-8"))


def validate(resp):
    missing = [k for k in REQUIRED_KEYS if k not in resp]
    if missing:
        raise AssertionError(f"missing keys in health response: {missing}")
    if not resp["provider"].get("house_key"):
        print("warning: no house provider key configured, anonymous requests will fail")
    usage = (resp.get("quota") or {}).get("usage") or {}
    unknown = [f for f in QUOTA_FEATURES if f not in usage]
    if unknown:
        raise AssertionError(f"quota usage missing features: {unknown}")
    limit = resp["quota"].get("daily_limit", 0)
    over = {f: c for f, c in usage.items() if c > limit}
    if over:
        print(f"note: features above the default limit (per-feature overrides?): {over}")


def main():
    try:
        validate(fetch_json(SERVICE_URL))
    except Exception as exc:
        print(f"mythbuster health check failed: {exc}")
        sys.exit(1)
    print("health smoke test ok")


if __name__ == "__main__":
    main()
