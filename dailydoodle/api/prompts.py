from fastapi import APIRouter, Query

from dailydoodle.core.eastern_time import is_valid_date_string, today_est
from dailydoodle.core.errors import NotFoundError, ValidationError
from dailydoodle.features.prompts.source import prompt_source

router = APIRouter(prefix="/api/prompts", tags=["prompts"])


@router.get("")
def list_prompts(include_future: bool = Query(False)):
    """Published prompts, newest first. Future dates stay hidden unless asked for."""
    today = today_est().isoformat()
    prompts = [
        p for p in prompt_source.list_prompts()
        if include_future or p.publish_date <= today
    ]
    prompts.sort(key=lambda p: p.publish_date, reverse=True)
    return {"prompts": [p.to_dict() for p in prompts], "today": today}


@router.get("/today")
def today_prompt():
    prompt = prompt_source.get_today_prompt()
    if prompt is None:
        raise NotFoundError("No prompt for today")
    return {"prompt": prompt.to_dict()}


@router.get("/{day}")
def prompt_for_date(day: str):
    if not is_valid_date_string(day):
        raise ValidationError("Invalid date format, expected YYYY-MM-DD")
    prompt = prompt_source.get_prompt_for_date(day)
    if prompt is None:
        raise NotFoundError("Prompt not found")
    return {"prompt": prompt.to_dict()}
