import logging
import json
from datetime import datetime
from functools import lru_cache

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from ..config.manager import ConfigManager
from ..models.command_response import CommandRequest, CommandResponse
from ..nlp.errors import DucktapeError, UpstreamFailure
from ..nlp.processor import NLPProcessor

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_processor() -> NLPProcessor:
    """Process-wide processor, so every request shares one response cache"""
    config = ConfigManager()
    logging.basicConfig(level=config.get('development.log_level', 'INFO'))
    return NLPProcessor(config)


app = FastAPI(title="Ducktape NLP API")

origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_status(exc: DucktapeError) -> int:
    return 502 if isinstance(exc, UpstreamFailure) else 400


@app.exception_handler(DucktapeError)
async def ducktape_exception_handler(request: Request, exc: DucktapeError):
    logger.error(f"Error processing request: {exc}")
    return JSONResponse(
        status_code=error_status(exc),
        content=CommandResponse.from_error(exc).to_dict(),
    )


@app.post("/command", response_model=CommandResponse)
async def process_command(request: CommandRequest, processor: NLPProcessor = Depends(get_processor)):
    logger.info(f"Processing command: {request.command}")
    result = await processor.parse_command(request.command)
    response = CommandResponse.from_result(result)
    if not response.success:
        logger.warning(f"Unrecognized command: {request.command}")
        return JSONResponse(status_code=400, content=response.to_dict())
    return response


@app.get("/health")
async def health(processor: NLPProcessor = Depends(get_processor)):
    return {
        "status": "ok",
        "llm": processor.draft_source is not None,
        "cached_responses": len(processor.cache),
    }


async def handle_message(message: dict, processor: NLPProcessor) -> dict:
    """Answer one WebSocket message"""
    message_type = message.get('type')
    if message_type == 'ping':
        return {'type': 'pong', 'timestamp': datetime.now().isoformat()}

    if message_type == 'parse':
        command = message.get('command') or ''
        if not isinstance(command, str):
            logger.warning(f"Non-string command in WebSocket message: {command!r}")
            return {'type': 'error', 'message': 'command must be a string', 'error': 'InvalidMessage'}
        try:
            result = await processor.parse_command(command)
        except DucktapeError as e:
            logger.error(f"Error parsing WebSocket command: {e}")
            return {'type': 'error', **CommandResponse.from_error(e).to_dict()}
        response = CommandResponse.from_result(result)
        return {'type': 'result' if response.success else 'error', **response.to_dict()}

    logger.warning(f"Unknown message type: {message_type}")
    return {'type': 'error', 'message': f"Unknown message type: {message_type}", 'error': 'UnknownMessage'}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, processor: NLPProcessor = Depends(get_processor)):
    """Parse commands over a WebSocket"""
    await websocket.accept()
    logger.info("WebSocket connection accepted")
    try:
        while True:
            data = await websocket.receive_text()
            if not data or not data.strip():
                continue

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.error(f"Invalid JSON message: {data}")
                await websocket.send_json({'type': 'error', 'message': 'Invalid JSON', 'error': 'InvalidJSON'})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({'type': 'error', 'message': 'Expected a JSON object', 'error': 'InvalidJSON'})
                continue

            await websocket.send_json(await handle_message(message, processor))
    except WebSocketDisconnect:
        logger.info("WebSocket connection closed")
