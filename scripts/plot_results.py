import pandas as pd
import matplotlib.pyplot as plt
from pathlib import Path

# ============================================================
# Paths
# ============================================================
PROJECT_ROOT = Path(__file__).resolve().parents[1]
RESULTS_CSV = PROJECT_ROOT / "results.csv"
SIZE_ORDER = ["small", "medium", "large"]

print(f"Loading results from: {RESULTS_CSV}")

# ============================================================
# Load CSV
# ============================================================
df = pd.read_csv(RESULTS_CSV)
df.columns = df.columns.str.strip()
sizes = [s for s in SIZE_ORDER if s in set(df["instance"])]

# ============================================================
# PLOT 1 — Coverage by pass count
# ============================================================
plt.figure(figsize=(7, 4))
coverage = df.groupby(["instance", "passes"])["coverage"].mean().unstack(0)
for inst in sizes:
    plt.plot(coverage.index, coverage[inst], marker="o", label=inst)

plt.xlabel("Assignment passes")
plt.ylabel("Assigned / eligible pairs")
plt.title("Coverage by number of passes")
plt.legend()
plt.grid(True)
plt.tight_layout()

# ============================================================
# PLOT 2 — Runtime by pass count
# ============================================================
plt.figure(figsize=(7, 4))
runtime = df.groupby(["instance", "passes"])["wall_time_s"].mean().unstack(0)
for inst in sizes:
    plt.plot(runtime.index, runtime[inst], marker="o", label=inst)

plt.xlabel("Assignment passes")
plt.ylabel("Wall time (s)")
plt.title("Runtime by number of passes")
plt.legend()
plt.grid(True)
plt.tight_layout()

# ============================================================
# PLOT 3 — Mean group fill rate by instance size
# ============================================================
plt.figure(figsize=(6, 4))
last_pass = df[df["passes"] == df["passes"].max()]
grouped = (
    last_pass.groupby("instance")["mean_fill_rate"]
      .agg(["mean", "std"])
      .reindex(sizes)
)

plt.bar(grouped.index, grouped["mean"], yerr=grouped["std"], capsize=6)
plt.ylabel("Mean fill rate (used / capacity)")
plt.title("Section fill rate by instance size")
plt.grid(axis="y")
plt.tight_layout()

# ============================================================
# SHOW ALL FIGURES AT ONCE
# ============================================================
plt.show()
