import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

SERVICE_NAME = "tantsaha-chatbot"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ChatLogEntry:
    session_id: str
    client_id: str
    ip: str
    intent: str
    message_count: int = 0
    response_length: int = 0
    latency: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None
    conversion_event: Optional[Dict[str, Any]] = None
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "service": SERVICE_NAME,
            "level": "ERROR" if self.error else "INFO",
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
            "clientId": self.client_id,
            "ip": self.ip,
            "intent": self.intent,
            "messageCount": self.message_count,
            "responseLength": self.response_length,
            "latency": self.latency,
        }
        if self.error:
            payload["error"] = self.error
            payload["errorType"] = self.error_type
        if self.conversion_event:
            payload["conversionEvent"] = self.conversion_event
        return payload


def append_chat_log(path: str, payload: Dict[str, Any]) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, ensure_ascii=True) + "\n")


def log_chat(entry: ChatLogEntry, path: str = "") -> Dict[str, Any]:
    payload = entry.to_dict()
    line = json.dumps(payload, ensure_ascii=False)
    if entry.error:
        logger.error(line)
    else:
        logger.info(line)
    if path:
        try:
            append_chat_log(path, payload)
        except OSError as exc:
            logger.warning("Failed to append chat log file: %s", exc)
    return payload
