#!/usr/bin/env python3
"""
Load the summary statistics written by experiments.py and produce tables and figures.

Figures:
1. Competitive ratio vs. prediction noise (one line per algorithm/parameter)
2. Competitive ratio vs. parameter at the largest noise level
"""
import argparse
import csv
import os
import sys

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt


# Global styling, shared by all figures
COLORS = {
    'PRR': '#1f77b4',          # blue
    'Phase': '#ff7f0e',        # orange
    'Two-Stage': '#2ca02c',    # green
    'Round-Robin': '#808080',  # gray
    'PWSPT': '#d62728',        # red
    'WDEQ': '#9467bd',         # purple
    'PTS': '#8c564b',          # brown
}

ALGORITHM_ORDER = ["PRR", "Phase", "Two-Stage", "Round-Robin", "PWSPT", "WDEQ", "PTS"]


def load_summary(csv_file):
    """
    Returns:
        (group_field, stats) where stats maps (name, param, group) -> row dict
    """
    if not os.path.exists(csv_file):
        print(f"✗ {csv_file} not found")
        print("  Run: python experiments.py ...")
        sys.exit(1)

    stats = {}
    with open(csv_file, 'r') as f:
        reader = csv.DictReader(f)
        group_field = 'round' if 'round' in reader.fieldnames else 'sigma'
        for row in reader:
            key = (row['name'], float(row['param']), float(row[group_field]))
            stats[key] = {
                'n': int(row['n']),
                'mean': float(row['mean']),
                'std_err': float(row['std_err']),
                'ci_lower': float(row['ci_lower']),
                'ci_upper': float(row['ci_upper']),
                'median': float(row['median']),
            }

    print(f"✓ Loaded {len(stats)} summary rows from {csv_file}")
    return group_field, stats


def series(stats):
    """Group summary rows into lines: (name, param) -> sorted [(group, stat)]."""
    lines = {}
    for (name, param, group), stat in stats.items():
        lines.setdefault((name, param), []).append((group, stat))
    for points in lines.values():
        points.sort(key=lambda p: p[0])
    order = {name: idx for idx, name in enumerate(ALGORITHM_ORDER)}
    return dict(sorted(lines.items(), key=lambda kv: (order.get(kv[0][0], len(order)), kv[0][1])))


def print_tables(group_field, stats):
    lines = series(stats)
    groups = sorted({group for (_, _, group) in stats})

    print("\n" + "=" * 100)
    print(f"MEAN COMPETITIVE RATIO BY {group_field.upper()}")
    print("=" * 100)
    header = "Algorithm".ljust(22)
    for group in groups:
        header += f"{group:g}".rjust(10)
    print(header)
    print("-" * 100)

    for (name, param), points in lines.items():
        by_group = dict(points)
        row = f"{name} ({param:g})".ljust(22)
        for group in groups:
            stat = by_group.get(group)
            row += (f"{stat['mean']:.4f}" if stat else "-").rjust(10)
        print(row)


def plot_ratio_vs_group(group_field, stats, out_dir):
    fig, ax = plt.subplots(figsize=(10, 6))
    linestyles = ['-', '--', ':', '-.']
    seen = {}

    for (name, param), points in series(stats).items():
        idx = seen.get(name, 0)
        seen[name] = idx + 1
        xs = np.array([g for g, _ in points])
        means = np.array([s['mean'] for _, s in points])
        lower = np.array([s['ci_lower'] for _, s in points])
        upper = np.array([s['ci_upper'] for _, s in points])
        color = COLORS.get(name, '#000000')
        ax.plot(xs, means, linestyle=linestyles[idx % len(linestyles)], marker='o',
                color=color, label=f"{name} ({param:g})")
        ax.fill_between(xs, lower, upper, color=color, alpha=0.1)

    ax.set_xlabel("Prediction noise σ" if group_field == 'sigma' else "Round", fontsize=12, fontweight='bold')
    ax.set_ylabel("Competitive ratio (Lower is Better ↓)", fontsize=12, fontweight='bold')
    ax.grid(True, alpha=0.3, linestyle='--')
    ax.legend(fontsize=8, ncol=2)
    plt.tight_layout()
    path = os.path.join(out_dir, f'fig1_ratio_vs_{group_field}.png')
    plt.savefig(path, dpi=300, bbox_inches='tight')
    print(f"✓ Generated {path}")
    plt.close()


def plot_ratio_vs_param(group_field, stats, out_dir):
    last = max(group for (_, _, group) in stats)
    fig, ax = plt.subplots(figsize=(8, 6))
    by_name = {}
    for (name, param, group), stat in stats.items():
        if group == last:
            by_name.setdefault(name, []).append((param, stat['mean']))

    for name, points in by_name.items():
        points.sort()
        if len(points) < 2:
            ax.axhline(points[0][1], color=COLORS.get(name, '#000000'), linestyle='--', label=name)
            continue
        ax.plot([p for p, _ in points], [m for _, m in points], marker='o',
                color=COLORS.get(name, '#000000'), label=name)

    ax.set_xlabel("Robustness / trust parameter", fontsize=12, fontweight='bold')
    ax.set_ylabel(f"Competitive ratio at {group_field} = {last:g}", fontsize=12, fontweight='bold')
    ax.grid(True, alpha=0.3, linestyle='--')
    ax.legend(fontsize=9)
    plt.tight_layout()
    path = os.path.join(out_dir, 'fig2_ratio_vs_param.png')
    plt.savefig(path, dpi=300, bbox_inches='tight')
    print(f"✓ Generated {path}")
    plt.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Tables and figures from experiment summaries")
    parser.add_argument('summary', nargs='?', default='result_summary.csv')
    parser.add_argument('--out-dir', default='.')
    args = parser.parse_args(argv)

    group_field, stats = load_summary(args.summary)
    print_tables(group_field, stats)

    print("\n" + "=" * 100)
    print("GENERATING FIGURES")
    print("=" * 100)
    os.makedirs(args.out_dir, exist_ok=True)
    plot_ratio_vs_group(group_field, stats, args.out_dir)
    plot_ratio_vs_param(group_field, stats, args.out_dir)


if __name__ == "__main__":
    main()
