"""シートサービスの FastAPI アプリケーション。

リモート表形式ストア契約（GET / POST）を1つのURLで提供する。
契約上のボディは application/json。Content-Type ヘッダは見ずに
常にボディを JSON として解釈する。
"""

import json
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from starlette.concurrency import run_in_threadpool

from backend.dependencies import get_sheet_service
from backend.sheet.service import SheetService

SheetDep = Annotated[SheetService, Depends(get_sheet_service)]

app = FastAPI(
    title="活動記録シート API",
    version="0.1.0",
)


@app.get("/")
async def get_sheet(service: SheetDep):
    """全行とストアのURLを返す。"""
    return service.snapshot()


@app.post("/")
async def post_sheet(request: Request, service: SheetDep):
    """同期（破壊的置換）・カレンダー取り込み・音声解析。"""
    raw = await request.body()
    try:
        body = json.loads(raw or b"null")
    except json.JSONDecodeError as e:
        return {"status": "error", "message": f"invalid JSON: {e}"}
    return await run_in_threadpool(service.handle_post, body)
