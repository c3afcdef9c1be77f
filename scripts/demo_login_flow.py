"""Demo: walk the whole authorization code flow in-process.

Plays the part of a client application registered as test-client and
prints one line per step.

Run with:
    python scripts/demo_login_flow.py
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from oauth_test_server.main import app

CLIENT_ID = "test-client"
CLIENT_SECRET = "test-secret"
REDIRECT_URI = "http://localhost:8080/callback"
USERNAME = "testuser"
PASSWORD = "password"


def main() -> None:
    client = TestClient(app, follow_redirects=False)
    client_auth = {"client_id": CLIENT_ID, "client_secret": CLIENT_SECRET}

    # ── Step 1: GET /oauth/authorize ────────────────────────────────
    r = client.get(
        "/oauth/authorize",
        params={
            "client_id": CLIENT_ID,
            "redirect_uri": REDIRECT_URI,
            "response_type": "code",
            "scope": "openid profile email",
            "state": "demo-state",
        },
    )
    login = urlparse(r.headers["location"])
    carried = {k: v[0] for k, v in parse_qs(login.query).items()}
    print(f"1. GET  /oauth/authorize      → {r.status_code}  Location: {login.path}")

    # ── Step 2: POST /authorize (bad creds) ─────────────────────────
    r = client.post("/authorize", data={**carried, "username": USERNAME, "password": "wrong"})
    print(f"2. POST /authorize (bad)      → {r.status_code}  (form shown again)")

    # ── Step 3: POST /authorize (good creds) ────────────────────────
    r = client.post("/authorize", data={**carried, "username": USERNAME, "password": PASSWORD})
    query = parse_qs(urlparse(r.headers["location"]).query)
    code = query["code"][0]
    print(
        f"3. POST /authorize (good)     → {r.status_code}  "
        f"code={code[:12]}…  state={query['state'][0]}"
    )

    # ── Step 4: POST /oauth/token (authorization_code) ──────────────
    token_request = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": REDIRECT_URI,
        **client_auth,
    }
    r = client.post("/oauth/token", data=token_request)
    tokens = r.json()
    access_token = tokens["access_token"]
    print(
        f"4. POST /oauth/token          → {r.status_code}  "
        f"access={access_token[:12]}…  expires_in={tokens['expires_in']}s"
    )

    # ── Step 5: GET /oauth/userinfo ─────────────────────────────────
    r = client.get("/oauth/userinfo", headers={"Authorization": f"Bearer {access_token}"})
    print(f"5. GET  /oauth/userinfo       → {r.status_code}  {r.json()}")

    # ── Step 6: POST /oauth/token (refresh_token) ───────────────────
    r = client.post(
        "/oauth/token",
        data={"grant_type": "refresh_token", "refresh_token": tokens["refresh_token"], **client_auth},
    )
    refreshed = r.json()["access_token"]
    print(f"6. POST /oauth/token (refresh) → {r.status_code}  access={refreshed[:12]}…")

    # ── Step 7: POST /oauth/introspect ──────────────────────────────
    r = client.post("/oauth/introspect", data={"token": refreshed})
    print(f"7. POST /oauth/introspect     → {r.status_code}  active={r.json()['active']}")

    # ── Step 8: POST /oauth/revoke, then introspect again ───────────
    r = client.post("/oauth/revoke", data={"token": refreshed})
    after = client.post("/oauth/introspect", data={"token": refreshed}).json()
    print(f"8. POST /oauth/revoke         → {r.status_code}  active={after['active']}")

    # ── Step 9: replay the code ─────────────────────────────────────
    r = client.post("/oauth/token", data=token_request)
    print(f"9. POST /oauth/token (replay) → {r.status_code}  {r.json()['error_description']}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
