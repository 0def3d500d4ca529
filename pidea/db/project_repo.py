import json
from datetime import datetime, timezone
from typing import Any

from pidea.db.database import Database
from pidea.models.project.models import Project


# Columns that may be changed through update_project
_UPDATABLE_COLUMNS = (
    "name",
    "description",
    "ide_type",
    "ide_port",
    "ide_status",
    "backend_port",
    "frontend_port",
    "database_port",
    "start_command",
    "build_command",
    "dev_command",
    "test_command",
    "framework",
    "language",
    "package_manager",
    "status",
    "priority",
)


class ProjectRepo:
    """Repository for project data access"""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_project(self, project: Project) -> Project:
        self.db.execute_update(
            """
            INSERT INTO projects
            (id, name, description, workspace_path, type, ide_type, ide_port, ide_status,
             backend_port, frontend_port, database_port, start_command, build_command,
             dev_command, test_command, framework, language, package_manager, status,
             priority, last_accessed, access_count, metadata, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                project.id,
                project.name,
                project.description,
                project.workspace_path,
                project.type,
                project.ide_type,
                project.ide_port,
                project.ide_status,
                project.backend_port,
                project.frontend_port,
                project.database_port,
                project.start_command,
                project.build_command,
                project.dev_command,
                project.test_command,
                project.framework,
                project.language,
                project.package_manager,
                project.status,
                project.priority,
                project.last_accessed.isoformat() if project.last_accessed else None,
                project.access_count,
                json.dumps(project.metadata),
                project.created_at.isoformat(),
                project.updated_at.isoformat(),
            ),
        )
        return project

    def get_project(self, project_id: str) -> Project | None:
        rows = self.db.execute_query(
            "SELECT * FROM projects WHERE id = ? AND status != 'deleted'",
            (project_id,),
        )
        if not rows:
            return None
        return self._row_to_project(rows[0])

    def get_project_by_workspace(self, workspace_path: str) -> Project | None:
        rows = self.db.execute_query(
            "SELECT * FROM projects WHERE workspace_path = ? AND status != 'deleted'",
            (workspace_path,),
        )
        if not rows:
            return None
        return self._row_to_project(rows[0])

    def list_projects(self, include_archived: bool = False) -> list[Project]:
        if include_archived:
            query = "SELECT * FROM projects WHERE status != 'deleted' ORDER BY priority DESC, updated_at DESC"
        else:
            query = "SELECT * FROM projects WHERE status = 'active' ORDER BY priority DESC, updated_at DESC"

        return [self._row_to_project(row) for row in self.db.execute_query(query)]

    def update_project(self, project_id: str, changes: dict[str, Any]) -> Project | None:
        project = self.get_project(project_id)
        if project is None:
            return None

        updates = []
        params: list[Any] = []

        for column in _UPDATABLE_COLUMNS:
            if column in changes and changes[column] is not None:
                updates.append(f"{column} = ?")
                params.append(changes[column])

        if changes.get("metadata") is not None:
            updates.append("metadata = ?")
            params.append(json.dumps({**project.metadata, **changes["metadata"]}))

        if not updates:
            return project

        updates.append("updated_at = ?")
        params.append(datetime.now(timezone.utc).isoformat())
        params.append(project_id)

        self.db.execute_update(
            f"UPDATE projects SET {', '.join(updates)} WHERE id = ?",
            tuple(params),
        )
        return self.get_project(project_id)

    def soft_delete_project(self, project_id: str) -> bool:
        return self.db.execute_update(
            "UPDATE projects SET status = 'deleted', updated_at = ? WHERE id = ? AND status != 'deleted'",
            (datetime.now(timezone.utc).isoformat(), project_id),
        ) > 0

    def touch(self, project_id: str) -> None:
        """Record an access to the project"""
        self.db.execute_update(
            "UPDATE projects SET last_accessed = ?, access_count = access_count + 1 WHERE id = ?",
            (datetime.now(timezone.utc).isoformat(), project_id),
        )

    def _row_to_project(self, row: dict) -> Project:
        return Project(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            workspace_path=row["workspace_path"],
            type=row["type"],
            ide_type=row["ide_type"],
            ide_port=row["ide_port"],
            ide_status=row["ide_status"] or "inactive",
            backend_port=row["backend_port"],
            frontend_port=row["frontend_port"],
            database_port=row["database_port"],
            start_command=row["start_command"],
            build_command=row["build_command"],
            dev_command=row["dev_command"],
            test_command=row["test_command"],
            framework=row["framework"],
            language=row["language"],
            package_manager=row["package_manager"],
            status=row["status"],
            priority=row["priority"] or 0,
            last_accessed=datetime.fromisoformat(row["last_accessed"]) if row["last_accessed"] else None,
            access_count=row["access_count"] or 0,
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
