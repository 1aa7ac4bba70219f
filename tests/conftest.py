# tests/conftest.py
import os
import sys
import asyncio
import json
from urllib.parse import urlencode

# Must be set before the application modules read their settings.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
from fakeredis.aioredis import FakeRedis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.abspath("."))

from contactbook import auth, crud, models
from contactbook.database import Base, get_db
from contactbook.schemas import UserCreate
from contactbook.storage import InMemoryStorage, get_storage
from main import app


# DB (SQLite in-memory for tests)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def prepare_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.query(models.Contact).delete()
        session.query(models.User).delete()
        session.commit()
        session.close()


# One event loop for the WHOLE pytest session
@pytest.fixture(scope="session")
def session_loop():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


# Token denylist goes to fakeredis instead of a real server
@pytest.fixture(autouse=True)
def cache_client(monkeypatch):
    client = FakeRedis(decode_responses=True)
    monkeypatch.setattr(auth, "_cache_client", client)
    return client


@pytest.fixture()
def storage():
    return InMemoryStorage(base_url="http://testserver/storage")


# Simple ASGI response/client
class SimpleResponse:
    def __init__(
        self, status_code: int, body: bytes, headers: list[tuple[bytes, bytes]]
    ):
        self.status_code = status_code
        self._body = body
        self.headers = {k.decode(): v.decode() for k, v in headers}

    def json(self):
        return json.loads(self._body.decode())


class SimpleClient:
    """
    Important:
    - uses ONE shared session loop (passed from fixture)
    - does NOT call asyncio.run()
    - does NOT close the loop
    """

    def __init__(self, app, loop):
        self.app = app
        self.loop = loop

    def close(self):
        # do not close the loop here (session fixture closes it)
        pass

    def request(
        self,
        method: str,
        path: str,
        json_body=None,
        data=None,
        headers=None,
        files=None,
        params=None,
    ):
        headers = dict(headers or {})
        body_bytes = b""

        path, _, query = path.partition("?")
        if params:
            query = "&".join(filter(None, [query, urlencode(params, doseq=True)]))

        if files:
            boundary = "TESTBOUNDARY"
            parts: list[bytes] = []
            for name, value in (data or {}).items():
                parts.append(
                    (
                        f"--{boundary}\r\n"
                        f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
                        f"{value}\r\n"
                    ).encode()
                )
            for name, (filename, content, content_type) in files.items():
                disposition = f'form-data; name="{name}"; filename="{filename}"'
                part_headers = (
                    f"--{boundary}\r\n"
                    f"Content-Disposition: {disposition}\r\n"
                    f"Content-Type: {content_type or 'application/octet-stream'}\r\n\r\n"
                )
                parts.append(part_headers.encode() + content + b"\r\n")
            parts.append(f"--{boundary}--\r\n".encode())
            body_bytes = b"".join(parts)
            headers["content-type"] = f"multipart/form-data; boundary={boundary}"

        elif json_body is not None:
            body_bytes = json.dumps(json_body).encode()
            headers.setdefault("content-type", "application/json")

        elif data is not None:
            if isinstance(data, dict):
                body_bytes = urlencode(data, doseq=True).encode()
            elif isinstance(data, bytes):
                body_bytes = data
            else:
                body_bytes = str(data).encode()
            headers.setdefault("content-type", "application/x-www-form-urlencoded")

        headers.setdefault("host", "testserver")
        headers["content-length"] = str(len(body_bytes))
        raw_headers = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
        scope = {
            "type": "http",
            "http_version": "1.1",
            "scheme": "http",
            "method": method.upper(),
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "headers": raw_headers,
            "query_string": query.encode(),
            "server": ("testserver", 80),
            "client": ("testclient", 5000),
        }

        async def receive():
            nonlocal body_bytes
            chunk, body_bytes = body_bytes, b""
            return {"type": "http.request", "body": chunk, "more_body": False}

        response_body = bytearray()
        response_status = 500
        response_headers: list[tuple[bytes, bytes]] = []

        async def send(message):
            nonlocal response_status, response_headers
            if message["type"] == "http.response.start":
                response_status = message["status"]
                response_headers = message.get("headers", [])
            elif message["type"] == "http.response.body":
                response_body.extend(message.get("body", b""))

        # ensure the loop is the current one
        asyncio.set_event_loop(self.loop)
        self.loop.run_until_complete(self.app(scope, receive, send))
        return SimpleResponse(response_status, bytes(response_body), response_headers)

    def get(self, path: str, headers=None, params=None):
        return self.request("GET", path, headers=headers, params=params)

    def post(self, path: str, json=None, data=None, headers=None, files=None):
        return self.request(
            "POST", path, json_body=json, data=data, headers=headers, files=files
        )

    def put(self, path: str, json=None, data=None, headers=None, files=None):
        return self.request(
            "PUT", path, json_body=json, data=data, headers=headers, files=files
        )

    def patch(self, path: str, json=None, data=None, headers=None, files=None):
        return self.request(
            "PATCH", path, json_body=json, data=data, headers=headers, files=files
        )

    def delete(self, path: str, headers=None):
        return self.request("DELETE", path, headers=headers)


# Client fixture: override DB and storage dependencies per test
@pytest.fixture()
def client(db_session, storage, session_loop):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    c = SimpleClient(app, loop=session_loop)
    try:
        yield c
    finally:
        app.dependency_overrides.clear()
        c.close()


def create_user(db_session, email="owner@example.com", password="secret123", name="Owner"):
    hashed = auth.get_password_hash(password)
    user_in = UserCreate(
        name=name, email=email, password=password, password_confirmation=password
    )
    return crud.create_user(db_session, user_in, hashed)


def auth_headers(user) -> dict:
    token = auth.create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}
