FORM = {
    "name": "Giulia",
    "email": "giulia@example.com",
    "phone": "+39 000",
    "subject": "Info",
    "message": "Buongiorno",
    "privacy": True,
}


def test_contact_ok(client, db, mailer):
    res = client.post("/api/contact", json=FORM)
    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True and body["id"] == db.rows("contact_messages")[0]["id"]
    assert len(mailer.sent) == 1


def test_contact_honeypot(client, db):
    res = client.post("/api/contact", json={**FORM, "website": "spam"})
    assert res.json() == {"ok": True}
    assert db.rows("contact_messages") == []


def test_contact_privacy_required(client):
    res = client.post("/api/contact", json={**FORM, "privacy": False})
    assert res.status_code == 400
    assert res.json()["error"] == "Devi accettare la Privacy Policy."


def test_contact_mail_failure_warns(client, mailer):
    mailer.fail = True
    body = client.post("/api/contact", json=FORM).json()
    assert body["ok"] is True
    assert "warning" in body


def test_contact_rate_limited_with_local_fallback(client, monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client.app.state._rl_store = {}
    codes = [client.post("/api/contact", json=FORM).status_code for _ in range(6)]
    assert codes[:5] == [200] * 5
    assert codes[5] == 429
