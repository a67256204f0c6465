from pydantic import BaseModel, Field
from typing import Dict, Any, List


class HistoryResponse(BaseModel):
    content_info: Dict[str, Any] = Field(..., description="Summary of the content record", alias="contentInfo")
    transfer_history: List[Dict[str, Any]] = Field(..., description="Ownership transfers, oldest first", alias="transferHistory")
    verification_history: List[Dict[str, Any]] = Field(..., description="Verifications, oldest first", alias="verificationHistory")
    download_history: List[Dict[str, Any]] = Field(..., description="Downloads, oldest first", alias="downloadHistory")
    merged_timeline: List[Dict[str, Any]] = Field(..., description="All events, newest first", alias="mergedTimeline")

    model_config = {"populate_by_name": True}


class ActivityFeedResponse(BaseModel):
    activities: List[Dict[str, Any]] = Field(..., description="Recent events across all records, newest first")
    total: int = Field(..., description="Number of events returned")


class StatsOverview(BaseModel):
    total_content: int = Field(..., alias="totalContent")
    total_verifications: int = Field(..., alias="totalVerifications")
    total_transfers: int = Field(..., alias="totalTransfers")
    total_downloads: int = Field(..., alias="totalDownloads")
    total_activities: int = Field(..., alias="totalActivities")

    model_config = {"populate_by_name": True}


class StatsResponse(BaseModel):
    overview: StatsOverview
