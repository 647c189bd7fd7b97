# Run with:  streamlit run src/schedule_risk/dashboard/app.py

import pandas as pd
import streamlit as st

from schedule_risk.config import DEFAULT_SIMULATION_RUNS, MAX_TASKS, SimulationConfig
from schedule_risk.cpm.errors import ScheduleError
from schedule_risk.cpm.monte_carlo import MonteCarloEngine
from schedule_risk.dashboard.charts import (
    gantt_figure,
    histogram_figure,
    s_curve_figure,
    tornado_figure,
)
from schedule_risk.loaders.task_loader import (
    format_dependencies,
    load_tasks_from_dataframe,
    sort_tasks_by_wbs,
)
from schedule_risk.validation.task_validator import has_blocking_issues, validate_tasks

# -----------------------------------------------------------
# Streamlit page config – MUST be first Streamlit call
# -----------------------------------------------------------
st.set_page_config(page_title="Schedule Risk Simulator", layout="wide")

st.title("🎲 Schedule Risk Simulator")
st.caption(
    "Monte Carlo over the critical path: how long, how much, and which tasks "
    "actually drive the date."
)

# -----------------------------------------------------------
# Sidebar: batch settings
# -----------------------------------------------------------
num_runs = st.sidebar.number_input(
    "Simulation runs", min_value=1, max_value=100_000, value=DEFAULT_SIMULATION_RUNS, step=100
)
confidence = st.sidebar.slider("Confidence level (%)", min_value=1, max_value=99, value=80)
seed_text = st.sidebar.text_input("Random seed (optional)", value="")
workers = st.sidebar.number_input("Worker threads", min_value=1, max_value=16, value=1)

# -----------------------------------------------------------
# File upload
# -----------------------------------------------------------
uploaded = st.file_uploader("Upload Task CSV", type=["csv"])

if uploaded is None:
    st.info(
        "Upload a CSV with columns TaskID, Name, WBS, Distribution, Min, Likely, Max "
        "(or Mean/StdDev, Mu/Sigma), CostMin, CostLikely, CostMax, Predecessors."
    )
    st.stop()

try:
    df_raw = pd.read_csv(uploaded, dtype={"TaskID": str, "Predecessors": str, "WBS": str})
    tasks = load_tasks_from_dataframe(df_raw)
except ValueError as e:
    st.error(f"Error loading tasks: {e}")
    st.stop()

# -----------------------------------------------------------
# Task list + validation
# -----------------------------------------------------------
st.subheader(f"Task List ({len(tasks)}/{MAX_TASKS})")
st.dataframe(
    pd.DataFrame(
        [
            {
                "WBS": t.wbs or "",
                "Task": t.name,
                "Distribution": t.dist_type.value,
                "Dependencies": format_dependencies(t, tasks),
            }
            for t in sort_tasks_by_wbs(tasks)
        ]
    ),
    use_container_width=True,
)

issues = validate_tasks(tasks)
if issues:
    with st.expander(f"Validation issues ({len(issues)})", expanded=has_blocking_issues(issues)):
        st.dataframe(pd.DataFrame(issues), use_container_width=True)

if has_blocking_issues(issues):
    st.error("Fix the critical issues above before running the simulation.")
    st.stop()

if not st.button("▶ Run simulation"):
    st.stop()

# -----------------------------------------------------------
# Run engine
# -----------------------------------------------------------
try:
    seed = int(seed_text) if seed_text.strip() else None
except ValueError:
    st.error("Seed must be an integer.")
    st.stop()

config = SimulationConfig(
    num_runs=int(num_runs),
    seed=seed,
    workers=int(workers),
    confidence_level=float(confidence),
)

try:
    with st.spinner(f"Running {config.num_runs} simulations..."):
        result = MonteCarloEngine(config).run(tasks)
except ScheduleError as e:
    st.error(f"Simulation failed: {e}")
    st.stop()

if result.is_empty:
    st.warning("No simulation run produced a valid schedule.")
    st.stop()

a = result.analysis

# -----------------------------------------------------------
# KPI strip
# -----------------------------------------------------------
st.subheader(f"Simulation Results ({result.valid_runs} Runs)")

c1, c2, c3, c4, c5 = st.columns(5)
with c1:
    st.metric("Mean duration", f"{a.mean_duration:.2f} days", help=f"StdDev {a.std_dev_duration:.2f}")
with c2:
    st.metric("Mean cost", f"${a.mean_cost:,.2f}", help=f"StdDev ${a.std_dev_cost:,.2f}")
with c3:
    st.metric(f"P{confidence} duration", f"{a.duration_at_confidence:.2f} days")
with c4:
    st.metric(f"P{confidence} cost", f"${a.cost_at_confidence:,.2f}")
with c5:
    st.metric("Project SSI (Dur CoV)", f"{a.schedule_sensitivity_index:.3f}")

st.markdown(
    f"**Confidence Query:** At a {confidence}% confidence level, the project is "
    f"estimated to finish within **{a.duration_at_confidence:.2f} days** and cost "
    f"less than **${a.cost_at_confidence:,.2f}**."
)

st.plotly_chart(gantt_figure(result, config.gantt_percentiles), use_container_width=True)

col_a, col_b = st.columns(2)
with col_a:
    st.plotly_chart(histogram_figure(result, "duration"), use_container_width=True)
    st.plotly_chart(s_curve_figure(result, "duration"), use_container_width=True)
with col_b:
    st.plotly_chart(histogram_figure(result, "cost"), use_container_width=True)
    st.plotly_chart(s_curve_figure(result, "cost"), use_container_width=True)

st.plotly_chart(tornado_figure(result), use_container_width=True)

# -----------------------------------------------------------
# Per-task table
# -----------------------------------------------------------
st.subheader("Criticality & Sensitivity")
table = result.task_table()
st.dataframe(table, use_container_width=True)
st.download_button(
    "Download task table (CSV)",
    table.to_csv(index=False).encode("utf-8"),
    file_name="schedule_risk_tasks.csv",
    mime="text/csv",
)
