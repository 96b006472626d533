from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from app.optimizer import constants
from app.optimizer.types import SessionRecord


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _get_db_path(db_path: Optional[str]) -> str:
	if db_path:
		return db_path
	return constants.DEFAULT_DB_PATH


def _connect(path: str) -> sqlite3.Connection:
	conn = sqlite3.connect(path, timeout=constants.SQLITE_BUSY_TIMEOUT_MS / 1000)
	conn.execute("PRAGMA journal_mode=WAL")
	conn.execute("PRAGMA synchronous=NORMAL")
	conn.execute(f"PRAGMA busy_timeout={constants.SQLITE_BUSY_TIMEOUT_MS}")
	return conn


def init_db(db_path: Optional[str] = None) -> None:
	path = _get_db_path(db_path)
	Path(path).parent.mkdir(parents=True, exist_ok=True)
	conn = _connect(path)
	try:
		conn.execute(
			"""
			CREATE TABLE IF NOT EXISTS optimization_sessions (
				id INTEGER PRIMARY KEY AUTOINCREMENT,
				session_id TEXT NOT NULL,
				session_type TEXT NOT NULL,
				ai_model TEXT NOT NULL,
				score_before INTEGER,
				score_after INTEGER,
				improvements_count INTEGER,
				improvements_data TEXT,
				status TEXT NOT NULL,
				created_at TEXT NOT NULL
			)
			"""
		)
		conn.commit()
	finally:
		conn.close()


def record_session(record: SessionRecord, db_path: Optional[str] = None) -> None:
	init_db(db_path)
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		conn.execute(
			"""
			INSERT INTO optimization_sessions
				(session_id, session_type, ai_model, score_before, score_after,
				improvements_count, improvements_data, status, created_at)
			VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
			""",
			(
				record.session_id,
				record.mode,
				record.model_used,
				record.score_before,
				record.score_after,
				record.improvement_count,
				json.dumps(record.improvements_payload, ensure_ascii=False),
				record.status,
				_now_iso(),
			),
		)
		conn.commit()
	finally:
		conn.close()


def list_sessions(db_path: Optional[str] = None) -> List[Dict[str, Any]]:
	init_db(db_path)
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		conn.row_factory = sqlite3.Row
		cursor = conn.cursor()
		cursor.execute(
			"""
			SELECT session_id, session_type, ai_model, score_before, score_after,
				improvements_count, improvements_data, status, created_at
			FROM optimization_sessions
			ORDER BY id ASC
			"""
		)
		rows = cursor.fetchall()
	finally:
		conn.close()

	sessions: List[Dict[str, Any]] = []
	for row in rows:
		item = dict(row)
		item["improvements_data"] = json.loads(item["improvements_data"] or "[]")
		sessions.append(item)
	return sessions


def session_sink(db_path: Optional[str] = None) -> Callable[[SessionRecord], None]:
	def _sink(record: SessionRecord) -> None:
		record_session(record, db_path=db_path)

	return _sink
