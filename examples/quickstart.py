#!/usr/bin/env python3
"""
MediaHub Quickstart — the session and video lifecycle in one script.

Registers a user → publishes a video → swaps its thumbnail → refreshes the
session → replays the old refresh token (rejected) → deletes the video →
logs out.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000
(MEDIAHUB_STORAGE_BACKEND=memory is enough; no Cloudinary account needed)
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api/v1"

# 1x1 transparent PNG
PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


def main():
    run_id = uuid.uuid4().hex[:6]
    client = httpx.Client(base_url=BASE, timeout=30)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Redis:    {'✓' if health['redis'] == 'ok' else '✗'}")
    print(f"  Storage:  {health['storage']}")

    # ── Register ──────────────────────────────────────────────────
    print("\n1. Registering user...")
    resp = client.post(
        "/auth/register",
        data={
            "fullname": "Demo User",
            "email": f"demo-{run_id}@example.com",
            "username": f"demo_{run_id}",
            "password": "demo-password-123",
        },
        files={
            "avatar": ("avatar.png", PNG, "image/png"),
            "coverImage": ("cover.png", PNG, "image/png"),
        },
    )
    assert resp.status_code == 201, f"Failed: {resp.text}"
    session = resp.json()["data"]
    print(f"   User: {session['user']['username']} ({session['user']['id'][:8]}...)")
    print(f"   Avatar: {session['user']['avatar_url']}")
    first_refresh = session["refresh_token"]

    # ── Publish a video ───────────────────────────────────────────
    print("\n2. Publishing video...")
    resp = client.post(
        "/videos",
        data={"title": "Hello MediaHub", "description": "Quickstart upload"},
        files={
            "videoFile": ("hello.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4"),
            "thumbnail": ("thumb.png", PNG, "image/png"),
        },
    )
    assert resp.status_code == 201, f"Failed: {resp.text}"
    video = resp.json()["data"]
    print(f"   Video: {video['title']} ({video['id'][:8]}...) published={video['is_published']}")

    # ── Swap the thumbnail ────────────────────────────────────────
    print("\n3. Replacing thumbnail (old blob deleted after the new one is saved)...")
    resp = client.patch(
        f"/videos/{video['id']}",
        files={"thumbnail": ("thumb2.png", PNG, "image/png")},
    )
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   {video['thumbnail_url']}")
    print(f"   → {resp.json()['data']['thumbnail_url']}")

    resp = client.patch(f"/videos/{video['id']}/publish")
    print(f"   Published: {resp.json()['data']['is_published']}")

    # ── Refresh, then replay the old refresh token ────────────────
    print("\n4. Refreshing session (cookie)...")
    resp = client.post("/auth/refresh")
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print("   New token pair issued")

    print("\n5. Replaying the first refresh token...")
    replay = httpx.post(
        f"{BASE}/auth/refresh",
        headers={"Authorization": f"Bearer {first_refresh}"},
        timeout=10,
    )
    print(f"   {replay.status_code} {replay.json()['errorKind']}: {replay.json()['message']}")

    # ── Delete + logout ───────────────────────────────────────────
    print("\n6. Deleting video...")
    resp = client.delete(f"/videos/{video['id']}")
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   {resp.json()['message']}")

    print("\n7. Logging out...")
    resp = client.post("/auth/logout")
    assert resp.status_code == 200, f"Failed: {resp.text}"
    resp = client.get("/users/me")
    print(f"   /users/me after logout: {resp.status_code}")

    print("\n✓ Quickstart complete!")


if __name__ == "__main__":
    main()
