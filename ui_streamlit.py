from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from closeness.company_info import CompanyInfo, load_company_info
from closeness.config import DEFAULT_MAX_DAYS, DEFAULT_TOP_K, PRICE_CSV_DIR
from closeness.data_loader import fetch_and_save_price_csv, load_all_instruments
from closeness.models import Instrument
from closeness.ranking import (
    RankingConfig,
    RankingPolicy,
    compare_instruments,
    find_instrument,
    rank,
)
from closeness.report import describe_correlation, format_result_line, results_to_frame


RETURN_MODE_LABELS = {"log": "Log returns", "simple": "Simple returns"}


def _get_folder_cache_key(price_dir: Path) -> str:
    """
    Cache key that changes whenever a CSV in the folder is added, replaced or removed.
    """

    parts = []
    for csv_path in sorted(Path(price_dir).glob("*.csv")):
        try:
            stat = csv_path.stat()
        except FileNotFoundError:
            continue
        parts.append(f"{csv_path.name}:{stat.st_mtime_ns}-{stat.st_size}")
    return "|".join(parts) or "empty"


@st.cache_data(show_spinner=False)
def _load_instruments(price_dir: str, max_days: int, mode: str, cache_key: str) -> List[Instrument]:
    _ = cache_key  # only part of the cache key
    return load_all_instruments(Path(price_dir), max_days=max_days, mode=mode)


def _resolve_ticker(
    ticker: str,
    instruments: Sequence[Instrument],
    infos: Dict[str, CompanyInfo],
) -> Tuple[Optional[Instrument], Optional[str]]:
    """Return the instrument for ``ticker`` or a message explaining why there is none."""

    cleaned = (ticker or "").strip().upper()
    if not cleaned:
        return None, None

    instrument = find_instrument(instruments, cleaned)
    if instrument is not None:
        return instrument, None

    info = infos.get(cleaned)
    if info is not None:
        return None, f"'{cleaned}' is defined ({info.industry}), but no stock data was loaded for it."
    return None, f"Ticker '{cleaned}' not found."


def _normalized_prices(a: Instrument, b: Instrument) -> pd.DataFrame:
    """Trailing-aligned prices of both instruments rebased to 100."""

    n = min(len(a.prices), len(b.prices))
    if n == 0:
        return pd.DataFrame(columns=["step", a.ticker, b.ticker])

    prices_a = [float(p) for p in a.prices[len(a.prices) - n :]]
    prices_b = [float(p) for p in b.prices[len(b.prices) - n :]]
    frame = pd.DataFrame({a.ticker: prices_a, b.ticker: prices_b})
    frame = frame / frame.iloc[0] * 100.0

    dates = a.dates[len(a.dates) - n :] if len(a.dates) >= n else ()
    frame.insert(0, "step", list(dates) if dates else list(range(n)))
    return frame


def _build_comparison_figure(frame: pd.DataFrame) -> go.Figure:
    fig = go.Figure()
    for column in frame.columns:
        if column == "step":
            continue
        fig.add_trace(go.Scatter(x=frame["step"], y=frame[column], mode="lines", name=str(column)))
    fig.update_layout(
        yaxis_title="Price (rebased to 100)",
        margin=dict(l=10, r=10, t=30, b=10),
        legend=dict(orientation="h"),
    )
    return fig


def _render_results(title: str, results, infos: Dict[str, CompanyInfo], empty_message: str) -> None:
    st.markdown(f"**{title}**")
    if not results:
        st.info(empty_message)
        return
    for result in results:
        st.text(
            format_result_line(
                result.ticker,
                infos.get(result.ticker.upper()),
                result.correlation,
                result.similarity,
            )
        )
    st.dataframe(results_to_frame(results, infos), use_container_width=True)


def main():
    st.set_page_config(page_title="Stock Closeness", layout="wide")
    st.title("Stock Closeness")

    st.sidebar.header("Settings")
    price_dir = Path(st.sidebar.text_input("Price CSV folder", value=str(PRICE_CSV_DIR)))
    max_days = int(
        st.sidebar.number_input("Maximum lookback (days)", min_value=2, max_value=5000, value=DEFAULT_MAX_DAYS)
    )
    mode = st.sidebar.radio(
        "Returns",
        options=list(RETURN_MODE_LABELS),
        format_func=lambda key: RETURN_MODE_LABELS[key],
    )
    top_k = int(st.sidebar.number_input("Results per ranking", min_value=1, max_value=50, value=DEFAULT_TOP_K))

    st.sidebar.markdown("---")
    st.sidebar.subheader("Download from Alpha Vantage")
    download_symbol = st.sidebar.text_input("Ticker to download", value="")
    if st.sidebar.button("Download"):
        try:
            with st.spinner("Downloading..."):
                csv_path = fetch_and_save_price_csv(download_symbol, price_dir=price_dir)
            st.sidebar.success(f"Saved {csv_path.name}")
        except Exception as exc:
            st.sidebar.error(f"Download failed: {exc}")

    try:
        infos = load_company_info()
    except ValueError as exc:
        st.sidebar.warning(f"Failed to read company info: {exc}")
        infos = {}

    instruments = _load_instruments(str(price_dir), max_days, mode, _get_folder_cache_key(price_dir))
    if not instruments:
        st.warning(f"No stocks loaded from {price_dir}.")
        return
    st.caption(f"Loaded {len(instruments)} stocks.")

    tickers = [instrument.ticker for instrument in instruments]
    tab_closest, tab_compare, tab_opposite = st.tabs(["Closest", "Compare two", "Most opposite"])

    with tab_closest:
        target_input = st.text_input("Target ticker", value=tickers[0], key="closest_target")
        target, message = _resolve_ticker(target_input, instruments, infos)
        if message:
            st.warning(message)
        elif target is not None:
            config = RankingConfig(top_k=top_k)
            _render_results(
                f"Top {top_k} stocks most closely cointegrated with {target.ticker}",
                rank(target, instruments, RankingPolicy.TOP_SIMILARITY, config),
                infos,
                "No cointegrated stocks found.",
            )
            _render_results(
                f"Top {top_k} stocks by return correlation with {target.ticker}",
                rank(target, instruments, RankingPolicy.TOP_CORRELATION, config),
                infos,
                "No other stocks to compare.",
            )

    with tab_compare:
        col_a, col_b = st.columns(2)
        first_input = col_a.text_input("First ticker", value=tickers[0], key="compare_first")
        second_input = col_b.text_input("Second ticker", value=tickers[-1], key="compare_second")
        first, first_message = _resolve_ticker(first_input, instruments, infos)
        second, second_message = _resolve_ticker(second_input, instruments, infos)
        for message in (first_message, second_message):
            if message:
                st.warning(message)
        if first is not None and second is not None:
            comparison = compare_instruments(first, second)
            st.markdown("**Stock 1 details**")
            st.text(format_result_line(first.ticker, infos.get(first.ticker.upper()), comparison.correlation, comparison.similarity))
            st.markdown("**Stock 2 details**")
            st.text(format_result_line(second.ticker, infos.get(second.ticker.upper()), comparison.correlation, comparison.similarity))
            st.write(describe_correlation(comparison.correlation))
            if comparison.is_similar:
                st.success("These stocks move closely together.")
            st.plotly_chart(
                _build_comparison_figure(_normalized_prices(first, second)),
                use_container_width=True,
            )

    with tab_opposite:
        target_input = st.text_input("Target ticker", value=tickers[0], key="opposite_target")
        opposite_mode = st.radio(
            "Score",
            options=["similarity", "correlation"],
            format_func=lambda key: "Cointegration" if key == "similarity" else "Pearson",
            horizontal=True,
        )
        target, message = _resolve_ticker(target_input, instruments, infos)
        if message:
            st.warning(message)
        elif target is not None:
            config = RankingConfig(top_k=top_k, opposite_mode=opposite_mode)
            _render_results(
                f"Top {top_k} stocks least likely to be cointegrated with {target.ticker}",
                rank(target, instruments, RankingPolicy.MOST_OPPOSITE, config),
                infos,
                "No non-cointegrated stocks found.",
            )


if __name__ == "__main__":
    main()
