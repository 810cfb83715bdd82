from typing import List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, AliasChoices

Category = Literal[
    "attraction",
    "restaurant",
    "cafe",
    "bar",
    "shop",
    "hotel",
    "accommodation",
    "activity",
    "transport",
    "flight",
    "tip",
]
AdjustmentReason = Literal["travel_buffer", "conflict_resolution", "schedule_optimization"]
ConflictType = Literal["overlap", "impossible_timing", "too_long_day"]
SuggestedResolution = Literal["auto_adjust", "manual_review", "split_day"]
Resolution = Literal["auto_adjust", "manual_review", "accept_as_is"]
OperationType = Literal["reorder", "move_to_day", "swap"]

# ------- Core models -------
class Stop(BaseModel):
    """A single scheduled visit. Snapshots are frozen; changes travel as StopUpdate batches."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    trip_id: Optional[str] = None
    name: str = ""
    address: Optional[str] = None
    category: Category = "attraction"
    day: int = Field(1, ge=1)
    order: int = Field(0, ge=0, validation_alias=AliasChoices("order", "order_index"))
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_locked: bool = False

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

class StopChanges(BaseModel):
    order: Optional[int] = None
    day: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None

    def merged(self, other: "StopChanges") -> "StopChanges":
        return self.model_copy(update=other.model_dump(exclude_none=True))

class StopUpdate(BaseModel):
    id: str
    updates: StopChanges

class TimeAdjustment(BaseModel):
    stop_id: str
    new_start_time: str
    new_end_time: str
    reason: AdjustmentReason = "schedule_optimization"

    def as_update(self) -> StopUpdate:
        return StopUpdate(
            id=self.stop_id,
            updates=StopChanges(start_time=self.new_start_time, end_time=self.new_end_time),
        )

class ScheduleConflict(BaseModel):
    type: ConflictType
    day: int
    affected_stop_ids: List[str] = Field(default_factory=list)
    description: str
    suggested_resolution: SuggestedResolution = "manual_review"

class MoveTarget(BaseModel):
    """Where a dragged stop was dropped: onto another stop, or onto a day slot."""

    target_stop_id: Optional[str] = None
    target_day: Optional[int] = Field(None, ge=1)
    target_index: Optional[int] = Field(None, ge=0)
    mode: Literal["move", "swap"] = "move"

class DragOperation(BaseModel):
    type: OperationType
    moved_stop_id: str
    target_stop_id: Optional[str] = None
    source_day: int
    target_day: int
    source_index: int
    target_index: int
    order_updates: List[StopUpdate] = Field(default_factory=list)
    time_adjustments: List[TimeAdjustment] = Field(default_factory=list)
    updates: List[StopUpdate] = Field(default_factory=list)
    conflicts: List[ScheduleConflict] = Field(default_factory=list)
    conflicts_detected: bool = False

class SchedulePlan(BaseModel):
    stops: List[Stop] = Field(default_factory=list)
    time_adjustments: List[TimeAdjustment] = Field(default_factory=list)
    updates: List[StopUpdate] = Field(default_factory=list)
    conflicts: List[ScheduleConflict] = Field(default_factory=list)

class NeighborFit(BaseModel):
    start_time: str
    end_time: str
    earliest_start: str
    latest_start: Optional[str] = None
    fits: bool = True

class DayScore(BaseModel):
    day: int
    stop_ids: List[str] = Field(default_factory=list)
    total_distance_km: float = 0.0
    category_balance: float = 1.0
    time_flow_score: float = 0.0

class ItineraryAnalysis(BaseModel):
    overall_score: float = 0.0
    recommendations: List[str] = Field(default_factory=list)
    day_scores: List[DayScore] = Field(default_factory=list)

class Coordinates(BaseModel):
    lat: float
    lng: float

# ------- Request models -------
class StopsRequest(BaseModel):
    stops: List[Stop] = Field(default_factory=list)

class MoveRequest(StopsRequest):
    moved_stop_id: str
    target: MoveTarget
    day_start_time: Optional[str] = None

class PropagateRequest(StopsRequest):
    day_start_time: Optional[str] = None
    reason: AdjustmentReason = "schedule_optimization"

class ConflictsRequest(StopsRequest):
    day_number: int = Field(..., ge=1)

class TripMoveRequest(BaseModel):
    moved_stop_id: str
    target: MoveTarget
    day_start_time: Optional[str] = None
    resolution: Resolution = "auto_adjust"

class ResolveRequest(BaseModel):
    resolution: Resolution = "auto_adjust"
    day_start_time: Optional[str] = None

class GeocodeRequest(BaseModel):
    query: str

# ------- Response models -------
class UpdatesResponse(BaseModel):
    updates: List[StopUpdate] = Field(default_factory=list)

class AdjustmentsResponse(BaseModel):
    time_adjustments: List[TimeAdjustment] = Field(default_factory=list)

class ConflictsResponse(BaseModel):
    conflicts: List[ScheduleConflict] = Field(default_factory=list)

class StopsResponse(BaseModel):
    stops: List[Stop] = Field(default_factory=list)

class TripMoveResponse(BaseModel):
    operation: Optional[DragOperation] = None
    applied: List[StopUpdate] = Field(default_factory=list)
    conflicts: List[ScheduleConflict] = Field(default_factory=list)
    stops: List[Stop] = Field(default_factory=list)
