import logging
from pathlib import Path
from typing import Iterable, List, Optional

import pandas as pd

from .alphavantage_client import AlphaVantageClient
from .config import (
    ALPHAVANTAGE_API_KEY,
    ALPHAVANTAGE_BASE_URL,
    DEFAULT_MAX_DAYS,
    PRICE_CSV_DIR,
)
from .models import Instrument
from .statistics import RETURN_MODES


logger = logging.getLogger(__name__)

PRICE_COLUMNS = ["date", "close"]
# Preferred first when a file carries several close columns
CLOSE_COLUMN_CANDIDATES = ("adj close", "adjusted close", "adjustment close", "close", "close/last")
# Headered exports without usable column names: date in column 1, close in column 5
POSITIONAL_DATE_INDEX = 1
POSITIONAL_CLOSE_INDEX = 5


def get_available_symbols(price_dir: Path = PRICE_CSV_DIR) -> List[str]:
    """
    Return the tickers found in ``price_dir``.
    Example: AAPL.csv -> "AAPL"
    """
    symbols: List[str] = []
    for path in Path(price_dir).glob("*.csv"):
        symbols.append(path.stem)
    return sorted(symbols)


def _resolve_price_columns(df_raw: pd.DataFrame):
    lookup = {str(col).strip().lower(): col for col in df_raw.columns}
    if "date" in lookup:
        for candidate in CLOSE_COLUMN_CANDIDATES:
            if candidate in lookup:
                return lookup["date"], lookup[candidate]
    if len(df_raw.columns) > POSITIONAL_CLOSE_INDEX:
        return df_raw.columns[POSITIONAL_DATE_INDEX], df_raw.columns[POSITIONAL_CLOSE_INDEX]
    raise ValueError(
        "Unsupported CSV layout. Provide date/close columns "
        "or at least six columns with the date in column 1 and the close in column 5."
    )


def _clean_numeric(values: pd.Series) -> pd.Series:
    cleaned = values.astype(str).str.replace(",", "", regex=False).str.replace("$", "", regex=False)
    return pd.to_numeric(cleaned.str.strip(), errors="coerce")


def load_price_csv(symbol: str, price_dir: Path = PRICE_CSV_DIR) -> pd.DataFrame:
    """
    Read ``<price_dir>/<symbol>.csv`` into a DataFrame with ``date`` and ``close``
    columns, oldest row first.

    Rows whose date or close cannot be parsed, and rows with a non-positive
    close, are dropped; the rest of the file is still used. Files written
    newest first are re-sorted. Duplicate dates keep the last row.
    """
    csv_path = Path(price_dir) / f"{symbol}.csv"
    try:
        df_raw = pd.read_csv(csv_path, dtype=str, skipinitialspace=True, on_bad_lines="skip")
    except pd.errors.EmptyDataError:
        return pd.DataFrame(columns=PRICE_COLUMNS)

    date_col, close_col = _resolve_price_columns(df_raw)
    df = pd.DataFrame(
        {
            "date": pd.to_datetime(
                df_raw[date_col].str.strip(), errors="coerce", format="mixed"
            ).dt.normalize(),
            "close": _clean_numeric(df_raw[close_col]),
        }
    )

    parsed = df.dropna(subset=PRICE_COLUMNS)
    parsed = parsed[parsed["close"] > 0]
    skipped = len(df) - len(parsed)
    if skipped:
        logger.debug("%s: skipped %s unparsable or non-positive rows", symbol, skipped)

    parsed = parsed.sort_values("date", kind="stable").drop_duplicates(subset="date", keep="last")
    return parsed.reset_index(drop=True)[PRICE_COLUMNS]


def truncate_prices(df: pd.DataFrame, max_days: int = DEFAULT_MAX_DAYS) -> pd.DataFrame:
    """Keep the most recent ``max_days`` rows."""
    if max_days < 1:
        raise ValueError("max_days must be >= 1")
    if len(df) <= max_days:
        return df.reset_index(drop=True)
    return df.tail(max_days).reset_index(drop=True)


def load_instrument(
    symbol: str,
    price_dir: Path = PRICE_CSV_DIR,
    max_days: int = DEFAULT_MAX_DAYS,
    mode: str = "log",
) -> Optional[Instrument]:
    """Load one ticker. Returns None when the file has no usable rows."""
    df = load_price_csv(symbol, price_dir=price_dir)
    if df.empty:
        return None
    df = truncate_prices(df, max_days=max_days)
    return Instrument.from_frame(symbol, df, mode=mode)


def load_all_instruments(
    price_dir: Path = PRICE_CSV_DIR,
    max_days: int = DEFAULT_MAX_DAYS,
    mode: str = "log",
    symbols: Optional[Iterable[str]] = None,
) -> List[Instrument]:
    """
    Load every ticker in ``price_dir`` (or only ``symbols``).

    A file that fails to load, or has no usable rows, is logged and left out;
    the rest of the folder is still loaded.
    """
    if mode not in RETURN_MODES:
        raise ValueError(f"mode must be one of {RETURN_MODES}")
    if max_days < 1:
        raise ValueError("max_days must be >= 1")

    target_symbols = list(symbols) if symbols is not None else get_available_symbols(price_dir)

    instruments: List[Instrument] = []
    for symbol in target_symbols:
        try:
            instrument = load_instrument(symbol, price_dir=price_dir, max_days=max_days, mode=mode)
        except Exception:
            logger.exception("Error loading %s", Path(price_dir) / f"{symbol}.csv")
            continue

        if instrument is None:
            logger.warning("%s has no usable price rows and was skipped", symbol)
            continue
        logger.info("Loaded %s (%s days)", symbol, len(instrument.prices))
        instruments.append(instrument)

    return instruments


def fetch_and_save_price_csv(
    symbol: str,
    client: Optional[AlphaVantageClient] = None,
    price_dir: Path = PRICE_CSV_DIR,
    outputsize: str = "compact",
) -> Path:
    """
    Download daily closes for ``symbol`` and save them as ``<price_dir>/<symbol>.csv``.
    """
    symbol = (symbol or "").strip().upper()
    if not symbol:
        raise ValueError("No ticker was given.")

    if client is None:
        client = AlphaVantageClient(api_key=ALPHAVANTAGE_API_KEY, base_url=ALPHAVANTAGE_BASE_URL)
    df = client.fetch_daily_prices(symbol, outputsize=outputsize)

    price_dir = Path(price_dir)
    price_dir.mkdir(parents=True, exist_ok=True)
    csv_path = price_dir / f"{symbol}.csv"
    df.loc[:, PRICE_COLUMNS].to_csv(csv_path, index=False, date_format="%Y-%m-%d")
    logger.info("Saved %s rows for %s to %s", len(df), symbol, csv_path)
    return csv_path
