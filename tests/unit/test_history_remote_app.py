import unittest
from typing import List, Optional

from fastapi import APIRouter, FastAPI, Header, HTTPException, Response
from fastapi.testclient import TestClient
from pydantic import BaseModel

from tringqr.auth.credentials import StaticCredentialProvider
from tringqr.history.client import HistoryApiClient
from tringqr.history.engine import HistorySyncEngine, SyncStatus
from tringqr.history.writer import SingleWriter

TOKEN = "remote-token"
DEVICE_ID = "DEVICE-REMOTE"
WAIT = 5


class ScanAppend(BaseModel):
    code: str
    deviceId: str
    platform: str
    eventCategory: str
    eventName: str


class CodeCreate(BaseModel):
    content: str
    deviceId: str


def create_history_app(log: dict) -> FastAPI:
    router = APIRouter(prefix="/v1")

    def _authorize(authorization: Optional[str]) -> None:
        if authorization != f"Bearer {TOKEN}":
            raise HTTPException(status_code=401, detail="bad token")

    @router.get("/history")
    def list_scans(deviceId: str, authorization: Optional[str] = Header(default=None)):
        _authorize(authorization)
        return {"results": [entry for entry in log["scans"] if entry["deviceId"] == deviceId]}

    @router.post("/history/append", status_code=201)
    def append_scan(payload: ScanAppend, authorization: Optional[str] = Header(default=None)):
        _authorize(authorization)
        entry = payload.model_dump()
        entry["_id"] = f"scan-{len(log['scans']) + 1}"
        entry["updatedAt"] = "2025-01-01T00:00:00.000+0000"
        log["scans"].insert(0, entry)
        return entry

    @router.get("/codes")
    def list_codes(deviceId: str, authorization: Optional[str] = Header(default=None)):
        _authorize(authorization)
        return [entry for entry in log["codes"] if entry["deviceId"] == deviceId]

    @router.post("/codes/create", status_code=204)
    def create_code(payload: CodeCreate, authorization: Optional[str] = Header(default=None)):
        _authorize(authorization)
        log["codes"].insert(0, payload.model_dump())
        return Response(status_code=204)

    app = FastAPI()
    app.include_router(router)
    return app


class RemoteHistoryAppTests(unittest.TestCase):
    def _engine(self, token):
        self.log = {"scans": [], "codes": []}
        client = TestClient(create_history_app(self.log), base_url="http://testserver/v1")
        writer = SingleWriter(name="remote-app-writer").start()
        api = HistoryApiClient(
            "http://testserver/v1", StaticCredentialProvider(token), http_client=client
        )
        engine = HistorySyncEngine(api, writer, DEVICE_ID)
        self.addCleanup(api.close)
        self.addCleanup(writer.stop)
        self.addCleanup(engine.close)
        return engine

    def test_scan_history_round_trip(self):
        engine = self._engine(TOKEN)
        for code in ("https://example.com", "hello"):
            self.assertEqual(engine.record_scan(code).result(WAIT).status, SyncStatus.APPLIED)
        local = [(record.identifier, record.code) for record in engine.scans()]

        outcome = engine.load_scans().result(WAIT)

        self.assertEqual(outcome.status, SyncStatus.APPLIED)
        self.assertEqual([(record.identifier, record.code) for record in engine.scans()], local)
        self.assertEqual(engine.scans()[0].event_category, "qr_scan")

    def test_created_codes_round_trip(self):
        engine = self._engine(TOKEN)
        outcome = engine.record_created_code("note").result(WAIT)
        self.assertEqual(outcome.status, SyncStatus.APPLIED)
        self.assertEqual(self.log["codes"], [{"content": "note", "deviceId": DEVICE_ID}])
        engine.load_created_codes().result(WAIT)
        self.assertEqual([record.content for record in engine.created_codes()], ["note"])

    def test_rejected_token_is_a_failed_append(self):
        engine = self._engine("wrong-token")
        outcome = engine.record_scan("abc").result(WAIT)
        self.assertEqual(outcome.status, SyncStatus.FAILED)
        self.assertEqual(outcome.call.status_code, 401)
        self.assertEqual(engine.scans(), [])
        self.assertEqual(self.log["scans"], [])


if __name__ == "__main__":
    unittest.main()
