from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date
from dataclasses import asdict
import uvicorn

from wheel_ledger.core.constants import *
from wheel_ledger.core.exceptions import (
    LedgerValidationError, EventNotFoundError, InvalidStateTransitionError
)
from wheel_ledger.ledger.models.ledger_record import (
    OpenPayload, RollPayload, ClosePayload, AssignmentPayload
)
from wheel_ledger.ledger.services import csv_codec
from wheel_ledger import logger


class OpenRequest(BaseModel):
    ticker: str
    strategy: str = STRATEGY_CSP
    contracts: int = Field(1, ge=1)
    strike: float = Field(..., gt=0)
    premium_received: float = Field(0.0, ge=0)
    commission: float = Field(0.0, ge=0)
    start_date: date
    expiration_date: Optional[date] = None
    opening_price: Optional[float] = None
    note: Optional[str] = None


class RollRequest(BaseModel):
    new_start_date: date
    new_strike: float = Field(..., gt=0)
    new_premium: float = Field(0.0, ge=0)
    new_commission: float = Field(0.0, ge=0)
    closing_cost: float = Field(0.0, ge=0)
    closing_commission: float = Field(0.0, ge=0)
    new_expiration_date: Optional[date] = None
    current_price: Optional[float] = None
    note: Optional[str] = None


class CloseRequest(BaseModel):
    close_date: date
    closing_cost: float = Field(0.0, ge=0)
    commission: float = Field(0.0, ge=0)
    current_price: Optional[float] = None
    note: Optional[str] = None


class AssignRequest(BaseModel):
    close_date: date
    current_price: float = Field(..., gt=0)
    commission: Optional[float] = Field(None, ge=0)
    note: Optional[str] = None


class ImportRequest(BaseModel):
    csv: str


def record_to_json(record) -> dict:
    """Dataclass record -> JSON-safe dict"""
    result = {}
    for key, value in asdict(record).items():
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        result[key] = value
    return result


class LedgerDashboardApi:
    def __init__(self, application_context):
        if application_context is None:
            raise ValueError("application_context is REQUIRED")

        self.application_context = application_context
        self.state_manager = application_context.state_manager
        self.lifecycle_service = application_context.lifecycle_service
        self.aggregation_service = application_context.aggregation_service
        self.app = FastAPI(title="wheel-ledger")
        self.setup_cors()
        self.setup_error_handlers()
        self.setup_routes()

    def setup_cors(self):
        origins = ["*"]  # Allow all origins

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def setup_error_handlers(self):
        @self.app.exception_handler(LedgerValidationError)
        async def validation_error(request: Request, exc: LedgerValidationError):
            return JSONResponse(status_code=400, content={"detail": str(exc)})

        @self.app.exception_handler(EventNotFoundError)
        async def not_found_error(request: Request, exc: EventNotFoundError):
            return JSONResponse(status_code=404, content={"detail": str(exc)})

        @self.app.exception_handler(InvalidStateTransitionError)
        async def invalid_state_error(request: Request, exc: InvalidStateTransitionError):
            logger.warning(f"{request.method} {request.url.path}: {exc}")
            return JSONResponse(status_code=409, content={"detail": str(exc)})

    def setup_routes(self):
        @self.app.get("/api")
        async def root():
            return {"message": "Ledger is running"}

        @self.app.get("/api/positions")
        async def get_positions(quotes: bool = False):
            positions = self.lifecycle_service.get_current_positions()

            live = {}
            quote_service = self.application_context.quote_service
            if quotes and quote_service is not None:
                live = quote_service.fetch_quotes({p.ticker for p in positions})

            positions_list = []
            for position in positions:
                item = record_to_json(position)
                item["display_price"] = self.aggregation_service.display_price(position, live)
                positions_list.append(item)
            return {"positions": positions_list}

        @self.app.get("/api/history")
        async def get_history(ticker: Optional[str] = None, status: Optional[str] = None,
                              date_prefix: Optional[str] = None, page: int = 1, page_size: int = 25):
            if page_size < 1:
                raise HTTPException(status_code=400, detail="page_size must be >= 1")

            history = self.lifecycle_service.get_history()
            filtered = self.aggregation_service.filter_history(
                history, ticker=ticker, status=status, event_date_prefix=date_prefix
            )
            result = self.aggregation_service.paginate(filtered, page, page_size)
            result["items"] = [record_to_json(r) for r in result["items"]]
            return result

        @self.app.get("/api/chains/{chain_id}")
        async def get_chain(chain_id: str):
            return {"events": [record_to_json(r) for r in self.lifecycle_service.get_chain(chain_id)]}

        @self.app.get("/api/summary")
        async def get_summary(ticker: Optional[str] = None):
            history = self.lifecycle_service.get_history()
            totals = self.aggregation_service.portfolio_totals(history)
            summaries = self.aggregation_service.ticker_summaries(history)
            return {
                "totals": asdict(totals),
                "general_roi": self.aggregation_service.general_roi(summaries),
                "tickers": [asdict(s) for s in self.aggregation_service.filter_summaries(summaries, ticker)],
            }

        @self.app.get("/api/export", response_class=PlainTextResponse)
        async def export_csv():
            timezone = self.state_manager.get_optional_config_value(CONFIG_TIMEZONE, DEFAULT_TIMEZONE)
            text = csv_codec.serialize(self.lifecycle_service.get_history())
            filename = csv_codec.export_filename(timezone=timezone)
            return PlainTextResponse(
                text,
                media_type="text/csv; charset=utf-8",
                headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            )

        @self.app.post("/api/import")
        async def import_csv(request: ImportRequest):
            timezone = self.state_manager.get_optional_config_value(CONFIG_TIMEZONE, DEFAULT_TIMEZONE)
            records = csv_codec.parse(request.csv, timezone=timezone)
            if not records:
                raise LedgerValidationError("CSV has no rows to import")
            imported = self.lifecycle_service.import_history(records)
            return {"imported": len(imported)}

        @self.app.post("/api/positions", status_code=201)
        async def create_position(request: OpenRequest):
            record = self.lifecycle_service.create_position(OpenPayload(**request.model_dump()))
            return record_to_json(record)

        @self.app.put("/api/positions/{event_id}")
        async def update_position(event_id: int, request: OpenRequest):
            record = self.lifecycle_service.update_position(event_id, OpenPayload(**request.model_dump()))
            return record_to_json(record)

        @self.app.post("/api/positions/{event_id}/roll")
        async def roll_position(event_id: int, request: RollRequest):
            record = self.lifecycle_service.roll_position(RollPayload(id=event_id, **request.model_dump()))
            return record_to_json(record)

        @self.app.post("/api/positions/{event_id}/close")
        async def close_position(event_id: int, request: CloseRequest):
            record = self.lifecycle_service.close_position(ClosePayload(id=event_id, **request.model_dump()))
            return record_to_json(record)

        @self.app.post("/api/positions/{event_id}/assign")
        async def assign_position(event_id: int, request: AssignRequest):
            record = self.lifecycle_service.assign_position(AssignmentPayload(id=event_id, **request.model_dump()))
            return record_to_json(record)

        @self.app.post("/api/positions/{event_id}/revert-assignment")
        async def revert_assignment(event_id: int):
            return record_to_json(self.lifecycle_service.revert_assignment(event_id))

        @self.app.post("/api/positions/{event_id}/revert-close")
        async def revert_close(event_id: int):
            return record_to_json(self.lifecycle_service.revert_close(event_id))

    def run(self, host="127.0.0.1", port=8000):
        logger.info(f"Starting ledger dashboard API on {host}:{port}")
        uvicorn.run(self.app, host=host, port=port)
