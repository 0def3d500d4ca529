from enum import Enum


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AnalysisCategory(str, Enum):
    STRUCTURE = "structure"
    TECH_STACK = "tech-stack"
    CODE_QUALITY = "code-quality"

    @property
    def step_name(self) -> str:
        return _CATEGORY_STEPS[self]

    @property
    def description(self) -> str:
        return _CATEGORY_DESCRIPTIONS[self]


_CATEGORY_STEPS = {
    AnalysisCategory.STRUCTURE: "project_analysis_step",
    AnalysisCategory.TECH_STACK: "manifest_analysis_step",
    AnalysisCategory.CODE_QUALITY: "code_quality_analysis_step",
}

_CATEGORY_DESCRIPTIONS = {
    AnalysisCategory.STRUCTURE: "File, line and language breakdown of the workspace",
    AnalysisCategory.TECH_STACK: "Dependencies, frameworks and package manager from manifests",
    AnalysisCategory.CODE_QUALITY: "Long files, long lines, large functions and TODO markers",
}
