from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Tuple
from enum import Enum
from datetime import datetime


class ClusterSource(str, Enum):
    EMPTY = "empty"
    DISCOVERY = "discovery"
    OVERRIDE = "override"


class RunMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class Point3D(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", allow_inf_nan=False)

    x: float
    y: float
    z: float


Triangle = Tuple[Point3D, Point3D, Point3D]


class TriangleProperties(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    vertices: Tuple[Point3D, Point3D, Point3D]
    angles: Tuple[float, float, float]
    area: float


class WorkerAddress(BaseModel):
    model_config = ConfigDict(frozen=True)

    ip: str
    port: int = Field(ge=1, le=65535)

    def __str__(self):
        return f"{self.ip}:{self.port}"


class ScanRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_address: str
    first_octet: int = Field(ge=0, le=255)
    last_octet: int = Field(ge=0, le=255)

    def addresses(self) -> List[str]:
        return [
            f"{self.base_address}.{octet}"
            for octet in range(self.first_octet, self.last_octet + 1)
        ]


class ClusterSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    workers: Tuple[WorkerAddress, ...] = ()
    source: ClusterSource = ClusterSource.EMPTY
    refreshed_at: Optional[datetime] = None


class RunReport(BaseModel):
    mode: RunMode
    tasks_total: int = 0
    tasks_succeeded: int = 0
    tasks_failed: int = 0
    retries: int = 0


class RunResult(BaseModel):
    triangles: List[TriangleProperties]
    report: RunReport


class PointSetSubmission(BaseModel):
    points: List[Point3D]


class ClusterOverride(BaseModel):
    clusters: List[WorkerAddress]
