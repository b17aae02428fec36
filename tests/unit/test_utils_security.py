from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from storefront.utils.security import bearer_token, build_base_url


def _make_app():
    app = FastAPI()

    @app.get("/token")
    def token(request: Request):
        return {"token": bearer_token(request)}

    @app.get("/base")
    def base(request: Request):
        return {"base": build_base_url(request)}

    return app


def test_bearer_token_extraction():
    client = TestClient(_make_app())
    assert client.get("/token", headers={"Authorization": "Bearer abc"}).json() == {"token": "abc"}
    assert client.get("/token", headers={"Authorization": "Basic abc"}).json() == {"token": None}
    assert client.get("/token").json() == {"token": None}


def test_base_url_prefers_forwarded_headers():
    client = TestClient(_make_app())
    res = client.get("/base", headers={"x-forwarded-proto": "https", "x-forwarded-host": "shop.example.com"})
    assert res.json() == {"base": "https://shop.example.com"}


def test_base_url_defaults_to_https_and_host_header():
    client = TestClient(_make_app())
    assert client.get("/base").json() == {"base": "https://testserver"}
