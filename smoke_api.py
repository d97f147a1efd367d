#!/usr/bin/env python3
"""
Smoke test for a running clinic administration server.

Logs in as each test user (see ``manage.py ensure_test_users``), calls
the endpoints that role should reach and reports any unexpected status.
Seed the database with ``manage.py populate_data`` first.

    SMOKE_BASE_URL=http://127.0.0.1:8000 python smoke_api.py
"""
import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

BASE_URL = os.getenv("SMOKE_BASE_URL", "http://127.0.0.1:8000")
TIMEOUT = float(os.getenv("SMOKE_TIMEOUT", "10"))

TEST_USERS = {
    "reception": {"username": "reception1", "password": "123456"},
    "admin": {"username": "admin1", "password": "123456"},
    "super": {"username": "super", "password": "123456"},
}

DESK_CASES = [
    ("GET", "/healthz", None, 200, "health check"),
    ("GET", "/api/doctors/lookup", None, 200, "doctor lookup"),
    ("GET", "/api/specializations", None, 200, "specializations"),
    ("POST", "/Reception/Department/Load", {}, 200, "department load"),
    ("POST", "/Reception/Insurance/Load", {"patientId": 1}, 200, "insurance load"),
    ("POST", "/Reception/Insurance/Load", {"patientId": 0}, 400, "insurance load rejects bad id"),
]

ADMIN_CASES = [
    ("GET", "/api/doctors", None, 200, "doctor search"),
    ("GET", "/api/doctors/stats", None, 200, "doctor stats"),
    ("GET", "/api/doctors/report", None, 200, "active doctors report"),
    ("GET", "/api/doctors/1", None, 200, "doctor detail"),
    ("GET", "/api/doctors/1/departments", None, 200, "doctor departments"),
    ("GET", "/api/doctors/1/service-categories", None, 200, "doctor service categories"),
    ("GET", "/api/doctors/1/schedule", None, 200, "doctor schedule"),
    ("GET", "/api/doctors/1/history", None, 200, "doctor history"),
    ("GET", "/api/service-categories/grants", None, 200, "service category grants"),
    ("GET", "/api/schedules", None, 200, "schedules"),
    ("GET", "/api/history", None, 200, "history search"),
    ("GET", "/api/history/stats", None, 200, "history stats"),
]


@dataclass
class SmokeResult:
    success: bool
    endpoint: str
    method: str
    status_code: int
    response_time: float
    error_message: str = ""
    description: str = ""
    user_role: str = ""


class SmokeRunner:
    def __init__(self):
        self.session = requests.Session()
        self.headers: Dict[str, str] = {}
        self.current_role: Optional[str] = None
        self.results = []
        self.errors = []

    def _record(self, result: SmokeResult) -> SmokeResult:
        self.results.append(result)
        if not result.success:
            self.errors.append(result)
        mark = "ok  " if result.success else "FAIL"
        print(f"[{mark}] {result.method} {result.endpoint} -> {result.status_code} ({result.response_time:.2f}s)")
        return result

    def login(self, role: str) -> bool:
        user = TEST_USERS[role]
        self.current_role = role
        start = time.time()
        try:
            response = self.session.post(f"{BASE_URL}/api/auth/login", json=user, timeout=TIMEOUT)
        except requests.RequestException as e:
            self._record(SmokeResult(False, "/api/auth/login", "POST", 0, 0, str(e), "login", role))
            return False
        ok = response.status_code == 200
        self._record(SmokeResult(ok, "/api/auth/login", "POST", response.status_code, time.time() - start,
                                 "" if ok else response.text[:200], f"{user['username']} login", role))
        if ok:
            self.headers = {"Authorization": f"Token {response.json()['token']}"}
        return ok

    def call(self, method: str, endpoint: str, data: Optional[Dict[str, Any]] = None,
             expected_status: int = 200, description: str = "") -> SmokeResult:
        start = time.time()
        try:
            response = self.session.request(method, f"{BASE_URL}{endpoint}", json=data,
                                            headers=self.headers, timeout=TIMEOUT)
        except requests.RequestException as e:
            return self._record(SmokeResult(False, endpoint, method, 0, time.time() - start, str(e),
                                            description, self.current_role or ""))
        ok = response.status_code == expected_status
        return self._record(SmokeResult(ok, endpoint, method, response.status_code, time.time() - start,
                                        "" if ok else response.text[:200], description, self.current_role or ""))

    def run_role(self, role: str) -> None:
        if not self.login(role):
            return
        print(f"\n-- {role} --")
        cases = list(DESK_CASES)
        if role in ("admin", "super"):
            cases += ADMIN_CASES
        else:
            # reception must be kept out of staffing administration
            cases += [(m, e, d, 403, f"{desc} (forbidden)") for m, e, d, _, desc in ADMIN_CASES[:3]]
        for method, endpoint, data, expected, description in cases:
            self.call(method, endpoint, data, expected, description)

    def run(self) -> bool:
        for role in TEST_USERS:
            self.run_role(role)
            self.session = requests.Session()
            self.headers = {}
        self.report()
        return not self.errors

    def report(self) -> None:
        total = len(self.results)
        passed = total - len(self.errors)
        rate = (passed / total) * 100 if total else 0
        print(f"\n{passed}/{total} passed ({rate:.1f}%)")
        for i, error in enumerate(self.errors, 1):
            print(f"{i}. [{error.user_role}] {error.method} {error.endpoint} -> {error.status_code}")
            print(f"   {error.description}: {error.error_message}")


def main():
    runner = SmokeRunner()
    sys.exit(0 if runner.run() else 1)


if __name__ == "__main__":
    main()
