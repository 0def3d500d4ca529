import json
from datetime import datetime

from pidea.db.database import Database
from pidea.models.project.models import ProjectInterface


class ProjectInterfaceRepo:
    """Repository for the interfaces attached to projects"""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_interface(self, interface: ProjectInterface) -> ProjectInterface:
        self.db.execute_update(
            """
            INSERT INTO project_interfaces
            (id, project_id, interface_type, interface_id, name, config, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                interface.id,
                interface.project_id,
                interface.interface_type,
                interface.interface_id,
                interface.name,
                json.dumps(interface.config),
                interface.status,
                interface.created_at.isoformat(),
                interface.updated_at.isoformat(),
            ),
        )
        return interface

    def get_interface(self, project_id: str, interface_id: str) -> ProjectInterface | None:
        rows = self.db.execute_query(
            "SELECT * FROM project_interfaces WHERE project_id = ? AND (id = ? OR interface_id = ?)",
            (project_id, interface_id, interface_id),
        )
        if not rows:
            return None
        return self._row_to_interface(rows[0])

    def list_by_project(self, project_id: str) -> list[ProjectInterface]:
        rows = self.db.execute_query(
            "SELECT * FROM project_interfaces WHERE project_id = ? ORDER BY created_at ASC",
            (project_id,),
        )
        return [self._row_to_interface(row) for row in rows]

    def delete_interface(self, project_id: str, interface_id: str) -> bool:
        return self.db.execute_update(
            "DELETE FROM project_interfaces WHERE project_id = ? AND (id = ? OR interface_id = ?)",
            (project_id, interface_id, interface_id),
        ) > 0

    def _row_to_interface(self, row: dict) -> ProjectInterface:
        return ProjectInterface(
            id=row["id"],
            project_id=row["project_id"],
            interface_type=row["interface_type"],
            interface_id=row["interface_id"],
            name=row["name"],
            config=json.loads(row["config"]) if row["config"] else {},
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
