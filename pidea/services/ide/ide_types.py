from dataclasses import dataclass
from enum import Enum


class IDEError(Exception):
    pass


class UnknownIDETypeError(IDEError):
    def __init__(self, ide_type: str) -> None:
        super().__init__(f"Unknown IDE type '{ide_type}'. Valid types: {', '.join(all_types())}")
        self.ide_type = ide_type


class IDENotFoundError(IDEError):
    pass


class NoAvailablePortError(IDEError):
    pass


class IDEStartError(IDEError):
    pass


class IDEType(str, Enum):
    CURSOR = "cursor"
    VSCODE = "vscode"
    WINDSURF = "windsurf"


@dataclass(frozen=True)
class IDEDefinition:
    ide_type: IDEType
    name: str
    display_name: str
    description: str
    startup_command: str
    port_start: int
    port_end: int
    supported_features: tuple[str, ...]
    detection_patterns: tuple[str, ...]

    @property
    def ports(self) -> range:
        return range(self.port_start, self.port_end + 1)

    @property
    def default_port(self) -> int:
        return self.port_start

    def owns_port(self, port: int) -> bool:
        return self.port_start <= port <= self.port_end

    def supports(self, feature: str) -> bool:
        return feature in self.supported_features

    def to_dict(self) -> dict:
        return {
            "type": self.ide_type.value,
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "startup_command": self.startup_command,
            "port_range": {"start": self.port_start, "end": self.port_end},
            "supported_features": list(self.supported_features),
        }


IDE_DEFINITIONS: dict[IDEType, IDEDefinition] = {
    IDEType.CURSOR: IDEDefinition(
        ide_type=IDEType.CURSOR,
        name="Cursor",
        display_name="Cursor IDE",
        description="AI-powered code editor",
        startup_command="cursor",
        port_start=9222,
        port_end=9231,
        supported_features=("chat", "refactoring", "terminal", "git", "extensions"),
        detection_patterns=("cursor",),
    ),
    IDEType.VSCODE: IDEDefinition(
        ide_type=IDEType.VSCODE,
        name="VSCode",
        display_name="Visual Studio Code",
        description="Lightweight code editor",
        startup_command="code",
        port_start=9232,
        port_end=9241,
        supported_features=("chat", "refactoring", "terminal", "git", "extensions"),
        detection_patterns=("vscode", "code"),
    ),
    IDEType.WINDSURF: IDEDefinition(
        ide_type=IDEType.WINDSURF,
        name="Windsurf",
        display_name="Windsurf IDE",
        description="Modern development environment",
        startup_command="windsurf",
        port_start=9242,
        port_end=9251,
        supported_features=("chat", "refactoring", "terminal", "git"),
        detection_patterns=("windsurf",),
    ),
}


def all_types() -> list[str]:
    return [t.value for t in IDEType]


def is_valid_ide_type(ide_type: str) -> bool:
    return ide_type in all_types()


def get_definition(ide_type: str | IDEType) -> IDEDefinition:
    try:
        return IDE_DEFINITIONS[IDEType(ide_type)]
    except ValueError:
        raise UnknownIDETypeError(str(ide_type)) from None


def type_for_port(port: int) -> IDEType | None:
    for definition in IDE_DEFINITIONS.values():
        if definition.owns_port(port):
            return definition.ide_type
    return None
