"""
CuisineDuo - Prompt Logger.

Writes every model call to a markdown file for debugging prompts.
Enabled via CUISINEDUO_LOG_PROMPTS=1 or `cuisineduo serve --log-prompts`.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any

LOG_PROMPTS = os.getenv("CUISINEDUO_LOG_PROMPTS", "0") == "1"
LOG_DIR = Path("prompt_logs")

_session_id: str | None = None
_call_counter: int = 0


def enable_prompt_logging(enabled: bool = True) -> None:
    """Enable or disable prompt logging."""
    global LOG_PROMPTS
    LOG_PROMPTS = enabled
    if enabled:
        LOG_DIR.mkdir(exist_ok=True)


def is_prompt_logging_enabled() -> bool:
    return LOG_PROMPTS


def _get_session_dir() -> Path:
    global _session_id
    if _session_id is None:
        _session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    session_dir = LOG_DIR / _session_id
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def _render_message(message: dict) -> str:
    content = message.get("content")
    if isinstance(content, list):
        # Multimodal parts: keep text, elide image payloads
        parts = []
        for part in content:
            if part.get("type") == "text":
                parts.append(part.get("text", ""))
            else:
                parts.append(f"[{part.get('type', 'part')}]")
        content = "\n".join(parts)
    if content is None and message.get("tool_calls"):
        content = json.dumps(message["tool_calls"], indent=2, default=str)
    return f"### {message.get('role', '?')}\n\n```\n{content}\n```\n"


def log_prompt(
    *,
    node: str,
    model: str,
    system_prompt: str | None,
    messages: list[dict],
    response: Any = None,
    error: str | None = None,
    config: dict | None = None,
) -> Path | None:
    """
    Log a prompt and response to a file.

    Args:
        node: Which handler made this call (scan-receipt, chat-ai, ...)
        model: The model used
        system_prompt: The system prompt, if any
        messages: Conversation turns sent after the system prompt
        response: Raw text or structured result
        error: Any error that occurred
        config: Sampling settings (temperature, max_tokens, json mode)

    Returns:
        Path to the log file, or None if logging is disabled
    """
    if not LOG_PROMPTS:
        return None

    global _call_counter
    _call_counter += 1

    filepath = _get_session_dir() / f"{_call_counter:02d}_{node}.md"

    config_str = ""
    if config:
        config_str = "\n**Config:** " + ", ".join(f"{k}={v}" for k, v in config.items())

    content = f"""# LLM Call: {node}

**Time:** {datetime.now().isoformat()}
**Model:** {model}{config_str}

---

## System Prompt

```
{system_prompt or ""}
```

---

## Messages

{"".join(_render_message(m) for m in messages)}
---

## Response

"""

    if error:
        content += f"**ERROR:** {error}\n"
    elif response is not None:
        if isinstance(response, str):
            content += f"```\n{response}\n```\n"
        else:
            content += f"```json\n{json.dumps(response, indent=2, default=str)}\n```\n"
    else:
        content += "(No response)\n"

    filepath.write_text(content, encoding="utf-8")
    return filepath


def reset_session() -> None:
    """Start a fresh log session (new directory, counter back to zero)."""
    global _session_id, _call_counter
    _session_id = None
    _call_counter = 0
