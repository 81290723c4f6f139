"""SQLite storage for leads and analysis results.

Table: leads
- id (text, primary key)
- first_name, email (unique), website_url (text)
- status (text): pipeline state, see status.py
- created_at (text)

Table: analysis_results
- one row per completed analysis: scores, core web vitals, on-page SEO,
  technical and link figures, the rendered report and raw JSON blobs
- email_sent / email_sent_at are the only fields updated after insert
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from errors import LeadNotFoundError
from models import LeadRow

ANALYSIS_COLUMNS = (
    "performance_score_mobile",
    "performance_score_desktop",
    "accessibility_score",
    "best_practices_score",
    "seo_score",
    "lcp_mobile",
    "lcp_desktop",
    "fcp_mobile",
    "fcp_desktop",
    "cls_mobile",
    "cls_desktop",
    "tbt_mobile",
    "tbt_desktop",
    "meta_title",
    "meta_title_length",
    "meta_description",
    "meta_description_length",
    "has_h1",
    "h1_count",
    "h2_count",
    "h3_count",
    "missing_alt_images",
    "total_images",
    "has_sitemap",
    "has_robots_txt",
    "is_https",
    "is_mobile_friendly",
    "detected_cms",
    "detected_technologies",
    "security_score",
    "total_links",
    "internal_links",
    "external_links",
    "broken_links_count",
    "broken_links",
    "ai_recommendations",
    "html_report",
    "raw_mobile_data",
    "raw_desktop_data",
    "raw_seo_data",
    "screenshot_url",
)

# Columns holding JSON text
JSON_COLUMNS = {
    "detected_technologies",
    "broken_links",
    "ai_recommendations",
    "raw_mobile_data",
    "raw_desktop_data",
    "raw_seo_data",
}

TEXT_COLUMNS = JSON_COLUMNS | {
    "lcp_mobile",
    "lcp_desktop",
    "fcp_mobile",
    "fcp_desktop",
    "cls_mobile",
    "cls_desktop",
    "tbt_mobile",
    "tbt_desktop",
    "meta_title",
    "meta_description",
    "detected_cms",
    "html_report",
    "screenshot_url",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, path: str | Path):
        self.path = str(path)

    def get_connection(self) -> sqlite3.Connection:
        """Return a connection to the SQLite database."""
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the tables if they do not exist."""
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        analysis_columns = ",\n".join(f"                {column} {self._column_type(column)}" for column in ANALYSIS_COLUMNS)
        conn = self.get_connection()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS leads (
                    id TEXT PRIMARY KEY,
                    first_name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    website_url TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'queued',
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS analysis_results (
                    id TEXT PRIMARY KEY,
                    lead_id TEXT NOT NULL REFERENCES leads(id),
{analysis_columns},
                    analyzed_at TEXT NOT NULL,
                    email_sent INTEGER NOT NULL DEFAULT 0,
                    email_sent_at TEXT
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _column_type(column: str) -> str:
        return "TEXT" if column in TEXT_COLUMNS else "INTEGER"

    # --- Leads ---------------------------------------------------------------

    def upsert_lead(self, first_name: str, email: str, website_url: str) -> str:
        """
        Create a lead, or reset an existing lead with the same email to
        `queued` with the new name and URL. Returns the lead id.
        """
        conn = self.get_connection()
        try:
            row = conn.execute("SELECT id FROM leads WHERE email = ?", (email,)).fetchone()
            if row is not None:
                lead_id = row["id"]
                conn.execute(
                    "UPDATE leads SET first_name = ?, website_url = ?, status = 'queued' WHERE id = ?",
                    (first_name, website_url, lead_id),
                )
            else:
                lead_id = str(uuid.uuid4())
                conn.execute(
                    "INSERT INTO leads (id, first_name, email, website_url, status, created_at) "
                    "VALUES (?, ?, ?, ?, 'queued', ?)",
                    (lead_id, first_name, email, website_url, _now()),
                )
            conn.commit()
            return lead_id
        finally:
            conn.close()

    def get_lead(self, lead_id: str) -> LeadRow | None:
        conn = self.get_connection()
        try:
            row = conn.execute(
                "SELECT id, first_name, email, website_url, status, created_at FROM leads WHERE id = ?",
                (lead_id,),
            ).fetchone()
            return dict(row) if row is not None else None
        finally:
            conn.close()

    def update_lead_status(self, lead_id: str, status: str) -> None:
        conn = self.get_connection()
        try:
            cursor = conn.execute("UPDATE leads SET status = ? WHERE id = ?", (status, lead_id))
            conn.commit()
            if cursor.rowcount == 0:
                raise LeadNotFoundError(lead_id)
        finally:
            conn.close()

    # --- Analysis results ----------------------------------------------------

    def insert_analysis_result(self, lead_id: str, values: dict[str, Any]) -> str:
        """Store one completed analysis and return its id. Unknown keys are ignored."""
        analysis_id = str(uuid.uuid4())
        row = {}
        for column in ANALYSIS_COLUMNS:
            value = values.get(column)
            if column in JSON_COLUMNS and value is not None and not isinstance(value, str):
                value = json.dumps(value, ensure_ascii=False, default=str)
            elif isinstance(value, bool):
                value = int(value)
            row[column] = value

        columns = ["id", "lead_id", *row.keys(), "analyzed_at"]
        params = [analysis_id, lead_id, *row.values(), values.get("analyzed_at") or _now()]
        placeholders = ", ".join("?" for _ in columns)

        conn = self.get_connection()
        try:
            conn.execute(
                f"INSERT INTO analysis_results ({', '.join(columns)}) VALUES ({placeholders})",
                params,
            )
            conn.commit()
            return analysis_id
        finally:
            conn.close()

    def mark_email_sent(self, analysis_id: str) -> None:
        conn = self.get_connection()
        try:
            conn.execute(
                "UPDATE analysis_results SET email_sent = 1, email_sent_at = ? WHERE id = ?",
                (_now(), analysis_id),
            )
            conn.commit()
        finally:
            conn.close()

    def get_analysis_result(self, analysis_id: str) -> dict | None:
        """Fetch one analysis row with JSON columns parsed."""
        conn = self.get_connection()
        try:
            row = conn.execute("SELECT * FROM analysis_results WHERE id = ?", (analysis_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        out = dict(row)
        for column in JSON_COLUMNS:
            if out.get(column):
                try:
                    out[column] = json.loads(out[column])
                except ValueError:
                    pass
        return out

    def get_latest_scores(self, lead_id: str) -> dict | None:
        """Scores of the most recent analysis for a lead, for the status endpoint."""
        conn = self.get_connection()
        try:
            row = conn.execute(
                """
                SELECT performance_score_mobile, performance_score_desktop, seo_score,
                       accessibility_score, security_score
                FROM analysis_results
                WHERE lead_id = ?
                ORDER BY analyzed_at DESC
                LIMIT 1
                """,
                (lead_id,),
            ).fetchone()
            if row is None:
                return None
            return {
                "performance_mobile": row["performance_score_mobile"] or 0,
                "performance_desktop": row["performance_score_desktop"] or 0,
                "seo": row["seo_score"] or 0,
                "accessibility": row["accessibility_score"] or 0,
                "security": row["security_score"] or 0,
            }
        finally:
            conn.close()
