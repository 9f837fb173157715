import asyncio
import pathlib
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

SYS_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = SYS_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from event_checkin.config.settings import ClientConfig
from event_checkin.core.signing import verify

SECRET = b"cdb8d7497b34a314db76dd832803b393f6f4ef0dfa2a1dd230a7c8b32d600fb9"


@dataclass
class RecordedCall:
    method: str
    path: str
    query: Dict[str, str]
    headers: Dict[str, str]
    body: bytes


@dataclass
class FakeBackend:
    """In-memory attendance service that checks signatures like the real one."""

    students: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    attended: Dict[str, str] = field(default_factory=dict)
    calls: List[RecordedCall] = field(default_factory=list)
    delay: float = 0.0
    stats_payload: Optional[Dict[str, Any]] = None
    response_charset: Optional[str] = None

    def paths(self) -> List[str]:
        return [call.path for call in self.calls]


def build_app(backend: FakeBackend) -> web.Application:
    @web.middleware
    async def signature_check(request: web.Request, handler):
        body = await request.read()
        backend.calls.append(
            RecordedCall(
                method=request.method,
                path=request.path,
                query=dict(request.query),
                headers=dict(request.headers),
                body=body,
            )
        )
        timestamp = request.headers.get("X-App-Timestamp", "")
        signature = request.headers.get("X-App-Signature", "")
        if not timestamp or not verify(body, timestamp, SECRET, signature):
            return web.json_response({"detail": "Invalid signature"}, status=401)
        if backend.delay:
            await asyncio.sleep(backend.delay)
        return await handler(request)

    async def check_attendance(request: web.Request) -> web.Response:
        reg_no = (await request.json())["reg_no"]
        if backend.response_charset:
            return web.Response(
                body=b'{"status": "attended", "name": "Lisa Anderson"}',
                headers={"Content-Type": f"application/json; charset={backend.response_charset}"},
            )
        student = backend.students.get(reg_no)
        if student is None:
            return web.json_response({"detail": "Student not found"}, status=404)
        if reg_no in backend.attended:
            return web.json_response(
                {"status": "attended", "attended_at": backend.attended[reg_no], **student}
            )
        return web.json_response({"status": "not attended", **student})

    async def mark_attendance(request: web.Request) -> web.Response:
        reg_no = (await request.json())["reg_no"]
        if reg_no in backend.attended:
            return web.json_response({"detail": "Already marked"}, status=409)
        backend.attended[reg_no] = "2025-10-24 20:36:39"
        return web.json_response(
            {"status": "success", "message": "Attendance marked", "attended_at": backend.attended[reg_no]}
        )

    async def stats(request: web.Request) -> web.Response:
        if backend.stats_payload is not None:
            return web.json_response(backend.stats_payload)
        return web.json_response({"summary": [{"year": 3, "attended": len(backend.attended)}]})

    async def recent_students(request: web.Request) -> web.Response:
        students = [
            {"reg_no": reg_no, "name": backend.students[reg_no]["name"], "attended_at": at}
            for reg_no, at in backend.attended.items()
        ]
        return web.json_response(
            {
                "page": int(request.query.get("page", 1)),
                "per_page": int(request.query.get("per_page", 20)),
                "total": len(students),
                "total_pages": 1,
                "students": students,
            }
        )

    async def boom(request: web.Request) -> web.Response:
        return web.json_response({"detail": "boom"}, status=500)

    async def no_detail(request: web.Request) -> web.Response:
        return web.json_response({}, status=404)

    async def gateway(request: web.Request) -> web.Response:
        return web.Response(text="<html>Bad Gateway</html>", status=502, content_type="text/html")

    async def plain_ok(request: web.Request) -> web.Response:
        return web.Response(text="ok")

    async def broken_json(request: web.Request) -> web.Response:
        return web.Response(text="{not json", content_type="application/json")

    async def echo(request: web.Request) -> web.Response:
        return web.json_response({"query": dict(request.query)})

    app = web.Application(middlewares=[signature_check])
    app.router.add_post("/check_attendance", check_attendance)
    app.router.add_post("/mark_attendance", mark_attendance)
    app.router.add_get("/stats", stats)
    app.router.add_get("/recent_students", recent_students)
    app.router.add_get("/boom", boom)
    app.router.add_get("/no-detail", no_detail)
    app.router.add_get("/gateway", gateway)
    app.router.add_get("/plain", plain_ok)
    app.router.add_get("/broken-json", broken_json)
    app.router.add_get("/echo", echo)
    return app


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend(
        students={
            "23ECS015": {"name": "Bavithran B", "year": 3, "department": "CSE"},
            "23ECE042": {"name": "Kevin Denzil", "year": 2, "department": "ECE"},
        }
    )


@pytest_asyncio.fixture
async def server(backend: FakeBackend):
    test_server = TestServer(build_app(backend))
    await test_server.start_server()
    try:
        yield test_server
    finally:
        await test_server.close()


@pytest.fixture
def config(server: TestServer) -> ClientConfig:
    return ClientConfig(secret=SECRET, base_url=f"http://{server.host}:{server.port}", timeout=5)
