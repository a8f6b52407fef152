"""
Outside integrations: the rental request spreadsheet and the shorts JSON file.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException
from google.oauth2 import service_account
from googleapiclient.discovery import build
from pydantic import BaseModel

from config import settings

logger = logging.getLogger(__name__)

router = APIRouter()

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

_sheets_service = None


class RentalRequest(BaseModel):
    full_name: str
    address: str
    city: str
    zip_code: str
    quantity: int
    rental_days: int
    current_date: str


class ShortPayload(BaseModel):
    title: str
    description: str
    location: str
    img_src: str


def get_sheets_service():
    global _sheets_service
    if _sheets_service is None:
        credentials = service_account.Credentials.from_service_account_file(
            settings.GOOGLE_SERVICE_ACCOUNT_FILE, scopes=SCOPES
        )
        _sheets_service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
    return _sheets_service


def append_row(values: List[Any]) -> None:
    if not settings.GOOGLE_SHEET_ID:
        raise RuntimeError("GOOGLE_SHEET_ID is not configured")
    get_sheets_service().spreadsheets().values().append(
        spreadsheetId=settings.GOOGLE_SHEET_ID,
        range=settings.GOOGLE_SHEET_RANGE,
        insertDataOption="INSERT_ROWS",
        valueInputOption="RAW",
        body={"values": [values]},
    ).execute()


def load_shorts(path: Path) -> List[Dict[str, Any]]:
    try:
        shorts = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError):
        return []
    return shorts if isinstance(shorts, list) else []


def append_short(short: Dict[str, Any]) -> None:
    path = Path(settings.SHORTS_FILE)
    shorts = load_shorts(path)
    shorts.append(short)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(shorts, indent=2), encoding="utf-8")


@router.post("/send-message")
def send_rental_request(payload: RentalRequest):
    try:
        append_row(list(payload.model_dump().values()))
    except Exception:
        logger.exception("Failed to append rental request for %s", payload.full_name)
        raise HTTPException(status_code=500, detail="Failed to save request")
    return {"message": "Data added successfully"}


@router.post("/addShort")
def add_short(payload: ShortPayload):
    try:
        append_short(payload.model_dump())
    except OSError:
        logger.exception("Error adding short")
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return {"message": "Short added successfully!"}
