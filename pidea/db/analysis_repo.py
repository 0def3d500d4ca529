import json
from datetime import datetime, timezone

from pidea.db.database import Database
from pidea.models.analysis.enums import AnalysisCategory, AnalysisStatus
from pidea.models.analysis.models import Analysis, AnalysisOutcome


class AnalysisRepo:
    """Repository for analysis runs and their results"""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_analysis(self, analysis_id: str, project_id: str, category: AnalysisCategory) -> Analysis:
        now = datetime.now(timezone.utc)
        self.db.execute_update(
            """
            INSERT INTO analysis (id, project_id, analysis_type, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (analysis_id, project_id, category.value, AnalysisStatus.PENDING.value, now.isoformat(), now.isoformat()),
        )
        return Analysis(
            id=analysis_id,
            project_id=project_id,
            analysis_type=category,
            status=AnalysisStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

    def mark_running(self, analysis_id: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self.db.execute_update(
            "UPDATE analysis SET status = ?, started_at = ?, progress = 0, updated_at = ? WHERE id = ?",
            (AnalysisStatus.RUNNING.value, now, now, analysis_id),
        )

    def mark_completed(self, analysis_id: str, outcome: AnalysisOutcome, execution_time: int) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self.db.execute_update(
            """
            UPDATE analysis
            SET status = ?, progress = 100, completed_at = ?, updated_at = ?, result = ?,
                execution_time = ?, overall_score = ?, critical_issues_count = ?,
                warnings_count = ?, recommendations_count = ?
            WHERE id = ?
            """,
            (
                AnalysisStatus.COMPLETED.value,
                now,
                now,
                json.dumps(outcome.result),
                execution_time,
                outcome.overall_score,
                outcome.critical_issues_count,
                outcome.warnings_count,
                outcome.recommendations_count,
                analysis_id,
            ),
        )

    def mark_failed(self, analysis_id: str, error: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self.db.execute_update(
            "UPDATE analysis SET status = ?, error = ?, completed_at = ?, updated_at = ? WHERE id = ?",
            (AnalysisStatus.FAILED.value, error, now, now, analysis_id),
        )

    def get_analysis(self, analysis_id: str) -> Analysis | None:
        rows = self.db.execute_query("SELECT * FROM analysis WHERE id = ?", (analysis_id,))
        if not rows:
            return None
        return self._row_to_analysis(rows[0])

    def find_latest(self, project_id: str, category: AnalysisCategory) -> Analysis | None:
        """Latest completed analysis of a category for a project"""
        rows = self.db.execute_query(
            """
            SELECT * FROM analysis
            WHERE project_id = ? AND analysis_type = ? AND status = ?
            ORDER BY completed_at DESC
            LIMIT 1
            """,
            (project_id, category.value, AnalysisStatus.COMPLETED.value),
        )
        if not rows:
            return None
        return self._row_to_analysis(rows[0])

    def list_history(self, project_id: str, limit: int = 50) -> list[Analysis]:
        rows = self.db.execute_query(
            "SELECT * FROM analysis WHERE project_id = ? ORDER BY created_at DESC LIMIT ?",
            (project_id, limit),
        )
        return [self._row_to_analysis(row) for row in rows]

    def _row_to_analysis(self, row: dict) -> Analysis:
        return Analysis(
            id=row["id"],
            project_id=row["project_id"],
            analysis_type=AnalysisCategory(row["analysis_type"]),
            status=AnalysisStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            started_at=datetime.fromisoformat(row["started_at"]) if row["started_at"] else None,
            completed_at=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
            result=json.loads(row["result"]) if row["result"] else None,
            error=row["error"],
            execution_time=row["execution_time"],
            overall_score=row["overall_score"],
            critical_issues_count=row["critical_issues_count"] or 0,
            warnings_count=row["warnings_count"] or 0,
            recommendations_count=row["recommendations_count"] or 0,
        )
