#!/usr/bin/env python3
"""
NoteKeeper Quickstart — register, write, list, edit, delete.

Registers two users and shows that neither can see the other's notes.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api/v1"


def register(client: httpx.Client, username: str) -> tuple[int, dict]:
    resp = client.post("/users", json={"username": username})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    body = resp.json()
    return body["id"], {"Authorization": f"Bearer {body['access_token']}"}


def main():
    run_id = uuid.uuid4().hex[:6]
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    resp = client.get("/health")
    if resp.status_code != 200:
        print(f"Backend not reachable at {BASE}")
        sys.exit(1)
    print(f"  Database: {resp.json()['database']}")

    # ── Register ──────────────────────────────────────────────────
    print("\n1. Registering alice and bob...")
    alice, alice_auth = register(client, f"alice-{run_id}")
    bob, bob_auth = register(client, f"bob-{run_id}")
    print(f"   alice = {alice}, bob = {bob}")

    # ── Empty collection ──────────────────────────────────────────
    resp = client.get(f"/users/{alice}/notes", headers=alice_auth)
    print(f"\n2. alice lists before writing: {resp.status_code} {resp.json()['detail']}")

    # ── Create ────────────────────────────────────────────────────
    print("\n3. alice writes a note...")
    resp = client.post(
        f"/users/{alice}/notes",
        json={"title": "shopping", "content": "milk"},
        headers=alice_auth,
    )
    note_id = resp.json()["id"]
    print(f"   Note #{note_id}")

    # ── Isolation ─────────────────────────────────────────────────
    print("\n4. bob tries to read it...")
    resp = client.get(f"/users/{alice}/notes/{note_id}", headers=bob_auth)
    print(f"   via alice's path: {resp.status_code} {resp.json()['detail']}")
    resp = client.get(f"/users/{bob}/notes/{note_id}", headers=bob_auth)
    print(f"   via his own path: {resp.status_code} {resp.json()['detail']}")

    # ── Edit + list ───────────────────────────────────────────────
    print("\n5. alice edits and lists...")
    client.put(
        f"/users/{alice}/notes/{note_id}",
        json={"title": "shopping", "content": "milk, eggs"},
        headers=alice_auth,
    )
    resp = client.get(
        f"/users/{alice}/notes",
        params={"limit": 10, "offset": 0, "sort": "desc"},
        headers=alice_auth,
    )
    for n in resp.json()["notes"]:
        print(f"   #{n['id']} {n['title']}: {n['content']}")

    # ── Delete ────────────────────────────────────────────────────
    print("\n6. alice deletes the note...")
    resp = client.delete(f"/users/{alice}/notes/{note_id}", headers=alice_auth)
    print(f"   {resp.status_code} {resp.json()}")

    print("\nDone.")


if __name__ == "__main__":
    main()
