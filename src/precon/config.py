from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Mapping, Optional

from .models import DEFAULT_RATES, MarkupRates


_BOOLEAN_TRUE = {"1", "true", "yes", "on"}
DEFAULT_CURRENT_USER = "Current User"


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    overhead_rate: float
    profit_rate: float
    contingency_rate: float
    estimate_path: Optional[Path]
    output_dir: Path
    current_user: str = DEFAULT_CURRENT_USER
    export_csv: bool = False
    export_pdf: bool = False
    verbose: bool = False

    @property
    def rates(self) -> MarkupRates:
        return MarkupRates(
            overhead_rate=self.overhead_rate,
            profit_rate=self.profit_rate,
            contingency_rate=self.contingency_rate,
        )


def _to_path(value: object | None) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    text = str(value).strip()
    if not text:
        return None
    return Path(text).expanduser().resolve()


def _to_float(value: object | None) -> Optional[float]:
    if value is None:
        return None
    text = str(value).replace("%", "").replace(",", "").strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _to_rate(value: object | None, default: float) -> float:
    """
    Parse a markup fraction; anything outside [0, 1] falls back to ``default``.

    ``"10%"`` is read as a percentage and becomes ``0.10``.
    """

    rate = _to_float(value)
    if rate is not None and str(value).strip().endswith("%"):
        rate /= 100.0
    if rate is None or rate != rate or not 0.0 <= rate <= 1.0:
        return default
    return rate


def _flag(value: object | None) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _BOOLEAN_TRUE


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options."""

    overhead_rate = _to_rate(env.get("PRECON_OVERHEAD_RATE"), DEFAULT_RATES.overhead_rate)
    profit_rate = _to_rate(env.get("PRECON_PROFIT_RATE"), DEFAULT_RATES.profit_rate)
    contingency_rate = _to_rate(env.get("PRECON_CONTINGENCY_RATE"), DEFAULT_RATES.contingency_rate)
    estimate_path = _to_path(env.get("PRECON_ESTIMATE_JSON"))
    output_dir = _to_path(env.get("PRECON_OUTPUT_DIR")) or (Path.cwd() / "outputs").resolve()
    current_user = (env.get("PRECON_CURRENT_USER") or "").strip() or DEFAULT_CURRENT_USER
    verbose = _flag(env.get("PRECON_VERBOSE"))
    export_csv = False
    export_pdf = False

    cli_ns = _namespace(cli_args)
    if getattr(cli_ns, "overhead_rate", None) is not None:
        overhead_rate = _to_rate(cli_ns.overhead_rate, overhead_rate)
    if getattr(cli_ns, "profit_rate", None) is not None:
        profit_rate = _to_rate(cli_ns.profit_rate, profit_rate)
    if getattr(cli_ns, "contingency_rate", None) is not None:
        contingency_rate = _to_rate(cli_ns.contingency_rate, contingency_rate)
    if getattr(cli_ns, "estimate", None):
        estimate_path = _to_path(cli_ns.estimate) or estimate_path
    if getattr(cli_ns, "output_dir", None):
        output_dir = _to_path(cli_ns.output_dir) or output_dir
    if getattr(cli_ns, "user", None):
        current_user = str(cli_ns.user).strip() or current_user
    if getattr(cli_ns, "export_csv", False):
        export_csv = True
    if getattr(cli_ns, "export_pdf", False):
        export_pdf = True
    if getattr(cli_ns, "verbose", False):
        verbose = bool(cli_ns.verbose)

    return Config(
        overhead_rate=overhead_rate,
        profit_rate=profit_rate,
        contingency_rate=contingency_rate,
        estimate_path=estimate_path,
        output_dir=output_dir,
        current_user=current_user,
        export_csv=export_csv,
        export_pdf=export_pdf,
        verbose=verbose,
    )


__all__ = ["Config", "DEFAULT_CURRENT_USER", "load_config"]
