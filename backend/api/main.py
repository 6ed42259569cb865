"""FastAPIアプリケーション。

記録の登録・編集・削除API + 月報API + 同期・連携APIを統合。
画面（フロントエンド）はこのAPIだけを呼ぶ。
"""

import io
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Annotated, Any

import pandas as pd
from fastapi import Body, Depends, FastAPI, HTTPException, Path, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from backend.config import configure_logging
from backend.dependencies import (
    close_remote_stores,
    get_settings,
    get_state,
    get_sync_engine,
)
from backend.errors import (
    ActivityLogError,
    DuplicateRecordId,
    EndpointNotConfigured,
    RecordNotFound,
    RemoteStoreError,
    ValidationError,
)
from backend.interfaces.record import CATEGORY_ICONS, ActivityRecord, Category
from backend.records.ordering import filter_records
from backend.records.state import ActivityLogState
from backend.records.validation import default_draft, validate
from backend.report.calendar_link import build_event_url
from backend.report.engine import build_monthly_report, shift_month
from backend.sync.engine import SyncEngine

logger = logging.getLogger(__name__)

StateDep = Annotated[ActivityLogState, Depends(get_state)]
EngineDep = Annotated[SyncEngine, Depends(get_sync_engine)]


def get_synced_state(state: StateDep, engine: EngineDep) -> ActivityLogState:
    """SyncEngine の変更リスナーが登録済みの状態を返す（変更系エンドポイント用）。"""
    return state


SyncedStateDep = Annotated[ActivityLogState, Depends(get_synced_state)]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """起動時: エンドポイント設定済みなら1回 pull。

    終了時: 保留中の push を送り、HTTPセッションを閉じる。
    """
    configure_logging(get_settings().log_level)
    engine: SyncEngine = app.dependency_overrides.get(
        get_sync_engine, get_sync_engine
    )()
    await engine.pull()
    yield
    await engine.flush()
    close_remote_stores()


app = FastAPI(
    title="活動記録 API",
    version="0.1.0",
    lifespan=lifespan,
)


# ---------- 例外ハンドラ ----------

_ERROR_STATUS: list[tuple[type[ActivityLogError], int]] = [
    (ValidationError, 422),
    (RecordNotFound, 404),
    (DuplicateRecordId, 409),
    (EndpointNotConfigured, 400),
    (RemoteStoreError, 502),
]


@app.exception_handler(ActivityLogError)
async def handle_activity_log_error(request: Request, exc: ActivityLogError):
    status = next(
        (code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500
    )
    return JSONResponse(
        status_code=status, content={"detail": exc.message, "code": exc.code}
    )


# ---------- Pydantic モデル ----------


class RecordResponse(BaseModel):
    """1件の活動記録レスポンス。"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    date: str
    time: str
    category: str
    content: str
    place: str
    count: int
    note: str
    exclude_from_report: bool = Field(alias="excludeFromReport")


class BulkDeleteRequest(BaseModel):
    """POST /api/records/delete のリクエストボディ。"""

    ids: list[str]


class EndpointSettingRequest(BaseModel):
    """PUT /api/settings/endpoint のリクエストボディ。"""

    url: str | None = None


class CalendarImportRequest(BaseModel):
    """POST /api/import/calendar のリクエストボディ。"""

    model_config = ConfigDict(populate_by_name=True)

    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")


class VoiceParseRequest(BaseModel):
    """POST /api/voice/parse のリクエストボディ。"""

    transcript: str


class MonthlyStatsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    active_days: int = Field(alias="activeDays")
    event_count: int = Field(alias="eventCount")
    total_participants: int = Field(alias="totalParticipants")


class MonthRef(BaseModel):
    year: int
    month: int


class MonthlyReportResponse(BaseModel):
    """月報レスポンス。"""

    model_config = ConfigDict(populate_by_name=True)

    year: int
    month: int
    stats: MonthlyStatsResponse
    records: list[RecordResponse]
    report_text: str = Field(alias="reportText")
    chat_text: str = Field(alias="chatText")
    prev: MonthRef
    next: MonthRef


# ---------- ヘルパー ----------


def _to_record_response(record: ActivityRecord) -> RecordResponse:
    """ActivityRecord → RecordResponse の変換。"""
    return RecordResponse.model_validate(record.to_wire())


# ---------- エンドポイント ----------


@app.get("/api/health")
async def health_check():
    """ヘルスチェック。"""
    return {"status": "ok"}


@app.get("/api/categories")
async def list_categories():
    """カテゴリ一覧（選択肢の表示順・アイコン付き）。"""
    return {
        "categories": [{"name": c.value, "icon": CATEGORY_ICONS[c]} for c in Category]
    }


@app.get("/api/records")
async def list_records(
    state: StateDep,
    category: str | None = None,
    q: str | None = None,
):
    """記録一覧。絞り込み時は古い順、それ以外は新しい順。"""
    records = filter_records(state.records, category=category, keyword=q)
    return {
        "records": [_to_record_response(r) for r in records],
        "total": len(state.records),
    }


@app.get("/api/records/draft")
async def get_draft():
    """入力フォームの初期値（日付・時刻は現在）。"""
    return default_draft()


@app.post("/api/records", status_code=201)
async def create_record(
    state: SyncedStateDep,
    body: Annotated[dict[str, Any], Body()],
):
    """記録を作成する。IDはサーバー側で採番する。"""
    record = state.add(validate(body))
    return {
        "record": _to_record_response(record),
        "calendarUrl": build_event_url(record),
    }


@app.post("/api/records/csv")
async def post_records_csv(
    file: UploadFile,
    state: SyncedStateDep,
):
    """CSVファイルから記録をまとめて登録する。不正な行は読み飛ばす。"""
    content = await file.read()
    try:
        df = pd.read_csv(
            io.BytesIO(content), dtype=str, keep_default_na=False
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"CSVを読み込めません: {e}")

    if "content" not in df.columns or "date" not in df.columns:
        raise HTTPException(
            status_code=400,
            detail="date and content columns are required",
        )

    records: list[ActivityRecord] = []
    skipped = 0
    for row in df.to_dict(orient="records"):
        row.pop("id", None)
        try:
            records.append(validate(row))
        except ValidationError as e:
            logger.info("skipping CSV row: %s", e.message)
            skipped += 1

    state.add_many(records)
    return {"inserted": len(records), "skipped": skipped}


@app.post("/api/records/delete")
async def delete_records(
    body: BulkDeleteRequest,
    state: SyncedStateDep,
):
    """指定IDの記録を一括削除する。"""
    return {"deleted": state.delete_many(body.ids)}


@app.get("/api/records/{record_id}")
async def get_record(record_id: str, state: StateDep):
    return _to_record_response(state.get(record_id))


@app.put("/api/records/{record_id}")
async def update_record(
    record_id: str,
    state: SyncedStateDep,
    body: Annotated[dict[str, Any], Body()],
):
    """記録を丸ごと置き換える。IDは変えない。"""
    state.get(record_id)
    record = state.update(validate(body, record_id=record_id))
    return _to_record_response(record)


@app.delete("/api/records/{record_id}")
async def delete_record(record_id: str, state: SyncedStateDep):
    state.delete(record_id)
    return {"deleted": True}


@app.get("/api/records/{record_id}/calendar-url")
async def get_calendar_url(record_id: str, state: StateDep):
    """外部カレンダーの予定作成URL。日付が無ければ空文字。"""
    return {"url": build_event_url(state.get(record_id))}


@app.get("/api/reports/{year}/{month}")
async def get_monthly_report(
    year: Annotated[int, Path(ge=1, le=9999)],
    month: Annotated[int, Path(ge=1, le=12)],
    state: StateDep,
):
    """月報（集計・月間ログ・コピー用テキスト）。"""
    report = build_monthly_report(state.records, year, month)
    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)
    return MonthlyReportResponse(
        year=report.year,
        month=report.month,
        stats=MonthlyStatsResponse(
            active_days=report.stats.active_days,
            event_count=report.stats.event_count,
            total_participants=report.stats.total_participants,
        ),
        records=[_to_record_response(r) for r in report.records],
        report_text=report.report_text,
        chat_text=report.chat_text,
        prev=MonthRef(year=prev_year, month=prev_month),
        next=MonthRef(year=next_year, month=next_month),
    )


# ---------- 同期・連携 ----------


@app.get("/api/settings/endpoint")
async def get_endpoint_setting(state: StateDep, engine: EngineDep):
    return {"url": state.endpoint_url, "spreadsheetUrl": engine.spreadsheet_url}


@app.put("/api/settings/endpoint")
async def put_endpoint_setting(body: EndpointSettingRequest, engine: EngineDep):
    """エンドポイントURLを保存し、設定されていればリモートから pull する。"""
    result = await engine.on_endpoint_configured(body.url)
    return {
        "pulled": result is not None,
        "count": len(result.records) if result else 0,
        "spreadsheetUrl": result.spreadsheet_url if result else None,
    }


@app.post("/api/sync/pull")
async def pull_records(engine: EngineDep):
    """リモートの内容でローカルを置き換える。失敗時はローカルを変更しない。"""
    result = await engine.pull()
    return {
        "pulled": result is not None,
        "count": len(result.records) if result else 0,
    }


@app.post("/api/sync/push")
async def push_records(engine: EngineDep):
    """保留中のデバウンスを待たずに push する。

    送信中の push があれば合流し、その追加 push の結果を返す。
    """
    ack = await engine.push()
    return {"pushed": ack is not None, "count": ack.count if ack else 0}


@app.post("/api/import/calendar")
async def import_calendar(body: CalendarImportRequest, engine: EngineDep):
    """リモートにカレンダー予定を取り込ませる。"""
    count = await engine.import_calendar(body.start_date, body.end_date)
    return {"count": count}


@app.post("/api/voice/parse")
async def parse_voice(body: VoiceParseRequest, engine: EngineDep):
    """音声テキストから記録の下書きを作る（保存はしない）。"""
    draft = await engine.parse_voice(body.transcript)
    return draft.to_dict()
