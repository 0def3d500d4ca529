from pidea.events.event import Event


active_ide_changed_event_type = "activeIDEChanged"
ide_started_event_type = "ide.started"
ide_stopped_event_type = "ide.stopped"


def active_ide_changed(port: int, previous_port: int | None, source: str = "ide_manager") -> Event:
    return Event(
        event_type=active_ide_changed_event_type,
        content={
            "port": port,
            "previous_port": previous_port,
        },
        metadata={"source": source},
    )


def ide_started(port: int, ide_type: str, workspace_path: str | None) -> Event:
    return Event(
        event_type=ide_started_event_type,
        content={
            "port": port,
            "ide_type": ide_type,
            "workspace_path": workspace_path,
        },
        metadata={"port": port},
    )


def ide_stopped(port: int, ide_type: str | None) -> Event:
    return Event(
        event_type=ide_stopped_event_type,
        content={
            "port": port,
            "ide_type": ide_type,
        },
        metadata={"port": port},
    )
