# ui/streamlit_app.py
import os
from pathlib import Path

import pandas as pd
import streamlit as st

from settings import settings
from tracelog.naming import list_rotated
from tracelog.reader import durations, events_frame, summarize, trace_files
from util.logs import setup_logging

TRACE_PATH_DEF = "assets/trace.json"

setup_logging(settings.log_level)
st.set_page_config(page_title="perftrace — Trace Viewer", layout="wide")

# ---------------- helpers ----------------
def human_size(n: int | None) -> str:
    if n is None: return "n/a"
    units = ["B","KB","MB","GB","TB"]; x=float(n); i=0
    while x>=1024 and i<len(units)-1: x/=1024.0; i+=1
    return f"{x:.1f} {units[i]}"

def file_size(path: str) -> int | None:
    try:
        return Path(path).stat().st_size if os.path.exists(path) else None
    except OSError:
        return None

@st.cache_data(ttl=5)
def load_frame(paths: tuple) -> pd.DataFrame:
    return events_frame(paths)

# ---------------- sidebar ----------------
st.sidebar.title("Trace")
trace_path = st.sidebar.text_input("Active file", settings.trace_path or TRACE_PATH_DEF)
rotated = list_rotated(trace_path)
st.sidebar.write(f"Active: **{human_size(file_size(trace_path))}**")
st.sidebar.write(f"Rotated files: **{len(rotated)}**")
st.sidebar.write(f"Max file size: **{human_size(settings.trace_max_file_size)}**")
st.sidebar.write(f"Max files: **{settings.trace_max_files or 'unlimited'}**")
if st.sidebar.button("Refresh", use_container_width=True):
    load_frame.clear()

# ---------------- main ----------------
st.title("perftrace — Trace Viewer")

files = trace_files(trace_path)
if not files:
    st.info(f"No trace files for {trace_path} yet.")
    st.stop()

selected = st.multiselect("Files", files, default=files)
try:
    df = load_frame(tuple(selected))
except ValueError as e:
    st.error(f"Cannot parse trace: {e}")
    st.stop()

tab_summary, tab_events, tab_files = st.tabs(["Summary", "Events", "Files"])

# ========== SUMMARY ==========
with tab_summary:
    st.subheader("Durations by name")
    summ = summarize(df)
    if summ.empty:
        st.info("No complete B/E pairs.")
    else:
        st.dataframe(summ, use_container_width=True, hide_index=True)
        d = durations(df)
        top = summ["name"].head(10).tolist()
        st.bar_chart(d[d["name"].isin(top)].groupby("name")["duration_ms"].mean())

# ========== EVENTS ==========
with tab_events:
    st.subheader(f"Events ({len(df)})")
    col1, col2 = st.columns([1,2])
    ph = col1.selectbox("Phase", ["All","B","E"], index=0)
    q = col2.text_input("Filter name (substring)", "")
    view = df
    if ph != "All": view = view[view["ph"] == ph]
    if q: view = view[view["name"].str.contains(q, case=False, regex=False)]
    st.dataframe(view.tail(500), use_container_width=True, hide_index=True)

# ========== FILES ==========
with tab_files:
    st.subheader("Files")
    rows = [dict(file=p, size=human_size(file_size(p)), events=int((df["file"] == os.path.basename(p)).sum()))
            for p in files]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    st.caption("Open finished files in chrome://tracing or Perfetto.")
