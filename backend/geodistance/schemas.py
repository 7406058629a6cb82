from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class LookupRequest(BaseModel):
    index: str = ""
    # structured query (template); when set, q/size/sort are not sent
    body: Optional[Dict[str, Any]] = None
    q: Optional[str] = None
    size: Optional[int] = None
    sort: Optional[str] = None

    def params(self) -> Dict[str, Any]:
        p: Dict[str, Any] = {}
        if self.q is not None:
            p["q"] = self.q
        if self.size is not None:
            p["size"] = self.size
        if self.sort is not None:
            p["sort"] = self.sort
        return p


class SearchResult(BaseModel):
    hits: List[Dict[str, Any]] = []
    shard_failures: Optional[List[Any]] = None

    @classmethod
    def from_response(cls, res: Dict[str, Any]) -> "SearchResult":
        shards = res.get("_shards") or {}
        hits = (res.get("hits") or {}).get("hits") or []
        return cls(hits=hits, shard_failures=shards.get("failures"))


class Evaluation(BaseModel):
    status: Literal["done", "tagged", "failed"] = "done"
    distance: Optional[float] = None
    hits_examined: int = 0
    error: Optional[str] = None


class FilterOut(BaseModel):
    event: Dict[str, Any]
    evaluation: Evaluation


class BatchIn(BaseModel):
    events: List[Dict[str, Any]] = Field(default_factory=list)


class BatchOut(BaseModel):
    results: List[FilterOut]
