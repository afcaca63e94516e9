"""Pydantic schemas for user analytics."""
from pydantic import BaseModel


class TopPrompt(BaseModel):
    """Most-used prompt summary."""

    id: int
    title: str
    usage_count: int


class UserAnalytics(BaseModel):
    """Aggregates over the requesting user's prompts and executions."""

    total_prompts: int
    public_prompts: int
    template_prompts: int
    total_executions: int
    successful_executions: int
    avg_quality_rating: float
    total_tokens_used: int
    total_cost_estimate: float
    executions_this_week: int
    top_prompts: list[TopPrompt]
