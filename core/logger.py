import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


class EngineLogger:
    """
    One run of the widget engine, one session directory:
    - engine_log.txt: human readable trail
    - actions_log.jsonl: every resolution, strategy attempt, verification, overlay event
    - errors_log.txt: typed failures with their context
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        started = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        self.session_dir = self.output_dir / f"session_{started}"
        self.session_dir.mkdir(exist_ok=True)

        self.main_log_file = self.session_dir / "engine_log.txt"
        self.action_log_file = self.session_dir / "actions_log.jsonl"
        self.error_log_file = self.session_dir / "errors_log.txt"
        self.action_counter = 0

        self._setup_python_logging()
        self._banner(f"ENGINE SESSION STARTED: {started}")

    def _setup_python_logging(self):
        """Session-bound stdlib logger: errors and warnings go to errors_log.txt and stderr"""
        self.logger = logging.getLogger(f"widget_engine.{self.session_dir.name}")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
        for handler in (logging.FileHandler(self.error_log_file, encoding='utf-8'), logging.StreamHandler()):
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def _banner(self, title: str):
        self.log_info("=" * 80)
        self.log_info(title)
        self.log_info("=" * 80)

    def log_info(self, message: str):
        with open(self.main_log_file, 'a', encoding='utf-8') as f:
            f.write(f"[{_now()}] {message}\n")

    def log_action(self, action_type: str, details: Dict):
        """Append one structured event to actions_log.jsonl"""
        self.action_counter += 1
        entry = {
            "action_id": self.action_counter,
            "timestamp": datetime.now().isoformat(),
            "action_type": action_type,
            "details": details
        }
        line = json.dumps(entry, ensure_ascii=False)
        with open(self.action_log_file, 'a', encoding='utf-8') as f:
            f.write(line + '\n')

        self.log_info(f"#{self.action_counter} {action_type}: {json.dumps(details, ensure_ascii=False)}")

    def log_warning(self, message: str, context: Optional[Dict] = None):
        """Soft failures: logged, never raised"""
        self.log_info(f"WARNING: {message}")
        if context:
            self.log_action("warning", {"message": message, **context})
        self.logger.warning(message)

    def log_error(self, error_type: str, error_message: str, context: Optional[Dict] = None):
        lines = [f"[{_now()}] {error_type}", f"  {error_message}"]
        if context:
            lines += [f"  {key}: {value}" for key, value in context.items()]
        self.log_info(" | ".join(line.strip() for line in lines))
        self.logger.error("\n".join(lines))

    def read_actions(self) -> List[Dict]:
        """Every action logged in this session, oldest first"""
        if not self.action_log_file.exists():
            return []
        with open(self.action_log_file, 'r', encoding='utf-8') as f:
            return [json.loads(line) for line in f if line.strip()]

    def save_report(self, name: str, payload: Dict) -> Path:
        """Write a JSON report next to the session logs"""
        report_file = self.session_dir / name
        with open(report_file, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        self.log_info(f"Saved report: {report_file.name}")
        return report_file

    def close(self):
        """Detach handlers so repeated sessions do not leak file descriptors"""
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
        self._banner(f"SESSION COMPLETED - total actions logged: {self.action_counter}")
