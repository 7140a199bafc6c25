"""
client.py – HTTP client for the stationery backend REST API.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Optional

import requests

from .config import Config
from .errors import ApiError
from .models import (
    Product,
    Settings,
    StockEntry,
    Student,
    Transaction,
    TransactionPayload,
    TransactionUpdate,
    Vendor,
)
from .stock import build_stock_entry_payload

logger = logging.getLogger(__name__)


class StationeryAPI:
    """Thin wrapper around the backend endpoints the package relies on.

    Every failure (connection error, timeout, non-2xx answer or a body that
    is not JSON) is logged and raised as ``ApiError``.
    """

    def __init__(self, host: str, token: Optional[str] = None, timeout: float = 15):
        self.host = host.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_config(cls, config: Config) -> "StationeryAPI":
        return cls(config.api_host, token=config.token, timeout=config.timeout)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.host}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise ApiError(f"Could not reach the server: {exc}", path=path) from exc

        if not resp.ok:
            message = self._error_message(resp)
            logger.error("%s %s returned %s: %s", method, path, resp.status_code, message)
            raise ApiError(message, status_code=resp.status_code, path=path)

        try:
            return resp.json()
        except ValueError as exc:
            logger.error("%s %s returned a non-JSON body", method, path)
            raise ApiError("Server returned an unreadable response", resp.status_code, path) from exc

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        """Prefer the backend's ``message`` field over the bare status line."""
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"Server error {resp.status_code}"

    def _get_list(self, path: str) -> list:
        body = self._request("GET", path)
        if not isinstance(body, list):
            raise ApiError(f"Expected a list from {path}", path=path)
        return body

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_products(self) -> list[Product]:
        return [Product.from_api(p) for p in self._get_list("/api/products")]

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------

    @staticmethod
    def _student_path(course: str, student_id: str) -> str:
        return f"/api/users/{str(course or '').lower()}/{student_id}"

    def list_students(self) -> list[Student]:
        return [Student.from_api(s) for s in self._get_list("/api/users")]

    def get_student(self, course: str, student_id: str) -> Student:
        return Student.from_api(self._request("GET", self._student_path(course, student_id)))

    def update_student_items(self, student: Student, items: dict) -> Student:
        """Store the received flags (and paid state) of *student*."""
        body = self._request(
            "PUT",
            self._student_path(student.course, student.id),
            json={"paid": student.paid, "items": items},
        )
        logger.info("Updated items of student %s", student.student_id or student.id)
        return Student.from_api(body) if isinstance(body, dict) and body else student

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def list_transactions(self) -> list[Transaction]:
        return [Transaction.from_api(t) for t in self._get_list("/api/transactions")]

    def list_student_transactions(self, student_id: str) -> list[Transaction]:
        body = self._get_list(f"/api/transactions/student/{student_id}")
        return [Transaction.from_api(t) for t in body]

    def create_transaction(self, payload: TransactionPayload) -> Transaction:
        body = self._request("POST", "/api/transactions", json=payload.to_api())
        transaction = Transaction.from_api(body)
        logger.info("Created transaction %s for student %s", transaction.id, payload.student_id)
        return transaction

    def update_transaction(self, transaction_id: str, update: TransactionUpdate) -> Transaction:
        body = self._request("PUT", f"/api/transactions/{transaction_id}", json=update.to_api())
        logger.info("Updated transaction %s", transaction_id)
        return Transaction.from_api(body)

    # ------------------------------------------------------------------
    # Stock and vendors
    # ------------------------------------------------------------------

    def list_vendors(self) -> list[Vendor]:
        return [Vendor.from_api(v) for v in self._get_list("/api/vendors")]

    def list_stock_entries(self) -> list[StockEntry]:
        return [StockEntry.from_api(s) for s in self._get_list("/api/stock-entries")]

    def create_stock_entry(
        self,
        lines: Iterable,
        vendor_id: str,
        college_id: Optional[str] = None,
        invoice_number: str = "",
        invoice_date: Optional[datetime] = None,
        remarks: str = "",
        created_by: str = "System",
    ) -> Any:
        """Record stock received from *vendor_id* (central stock when *college_id* is None)."""
        payload = build_stock_entry_payload(
            lines,
            vendor_id,
            college_id=college_id,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            remarks=remarks,
            created_by=created_by,
        )
        body = self._request("POST", "/api/stock-entries", json=payload)
        logger.info("Recorded stock entry from vendor %s (%d lines)", vendor_id, len(payload["items"]))
        return body

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self) -> Settings:
        body = self._request("GET", "/api/settings")
        return Settings.from_api(body if isinstance(body, dict) else {})
