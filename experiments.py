"""
Experiment sweeps comparing the algorithms against the offline optimum.

Every run gets its own numpy Generator spawned from one base seed, so runs are
independent, can be distributed over worker processes, and the whole sweep
can be replayed with --base-seed.

Usage:
    python experiments.py exp1 -n 20                  # noisy predictions, sigma grid
    python experiments.py exp2 -n 5 -t 20             # predictions learned from history
    python experiments.py identical -n 20 -m 4        # weighted jobs on identical machines
    python experiments.py --workers 8 exp1 -n 100     # parallel sweep
    python experiments.py --help                      # Show options
"""

import argparse
import csv
import multiprocessing
import sys
from datetime import datetime

import numpy as np

import metrics
from schedulers.base import round_robin, spt
from schedulers.identical import PTS, PWSPT, WDEQ
from schedulers.phase import PhaseAlgorithm
from schedulers.prr import PreferentialRoundRobin
from schedulers.two_stage import TwoStage
from workload import (
    analyse_instances,
    create_mean_instance,
    generate_instance,
    generate_prediction,
    generate_releases,
    generate_weights,
)

PRR_LAMBDAS = [0.1, 0.5, 0.75]
PHASE_TRUSTS = [0.1, 1.0, 5.0]
TWO_STAGE_LAMBDAS = [0.1, 0.5, 0.75]
PTS_RHOS = [0.0, 0.25, 0.5, 0.75, 1.0]

BOOTSTRAP_SAMPLES = 1000

ENTRY_FIELDS = ["name", "param", "sigma", "simple_error", "max_min_error", "opt", "alg"]
EXP2_FIELDS = ["name", "param", "round", "simple_error", "max_min_error", "opt", "alg"]


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Simulate scheduling algorithms with predictions against the offline optimum",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python experiments.py exp1 -n 20 --num-sigma 5
  python experiments.py --base-seed 42 exp2 -n 3 -t 10
  python experiments.py --workers 4 identical -n 50 -m 2
        """
    )
    parser.add_argument('-o', '--output', default='result.csv',
                        help='CSV file for per-run results (default: result.csv)')
    parser.add_argument('--base-seed', type=int, default=None,
                        help='Base seed for reproducibility (default: random)')
    parser.add_argument('--workers', type=int, default=1,
                        help='Worker processes for independent runs (default: 1)')

    sub = parser.add_subparsers(dest='experiment', required=True)

    exp1 = sub.add_parser('exp1', help='Predictions with Gaussian noise over a sigma grid')
    exp1.add_argument('-l', '--instance-length', type=int, default=1000)
    exp1.add_argument('-n', '--num-instances', type=int, required=True)
    exp1.add_argument('-p', '--num-preds', type=int, default=5)
    exp1.add_argument('--step-sigma', type=float, default=50.0)
    exp1.add_argument('--num-sigma', type=int, default=10)
    exp1.add_argument('--rel-sigma', action='store_true',
                      help='Scale the noise with sqrt(job length)')
    exp1.add_argument('-a', '--alpha', type=float, default=1.1)

    exp2 = sub.add_parser('exp2', help='Predictions learned from previous rounds')
    exp2.add_argument('-n', '--trials', type=int, default=1)
    exp2.add_argument('-t', '--timesteps', type=int, default=20)
    exp2.add_argument('-a', '--alpha', type=float, default=1.1)
    exp2.add_argument('-s', '--sigma', type=float, default=1.0)
    exp2.add_argument('--rel-sigma', action='store_true')
    exp2.add_argument('-l', '--instance-length', type=int, default=1000)

    ident = sub.add_parser('identical', help='Weighted jobs with releases on identical machines')
    ident.add_argument('-n', '--num-instances', type=int, required=True)
    ident.add_argument('-l', '--instance-length', type=int, default=100)
    ident.add_argument('-m', '--machines', type=int, default=2)
    ident.add_argument('--scale', type=int, default=1,
                       help='Time steps per unit of time')
    ident.add_argument('--horizon', type=int, default=50,
                       help='Latest release time')
    ident.add_argument('--step-sigma', type=float, default=5.0)
    ident.add_argument('--num-sigma', type=int, default=5)
    ident.add_argument('-a', '--alpha', type=float, default=1.5)

    return parser.parse_args(argv)


def prediction_errors(instance, pred):
    return {
        'simple_error': metrics.simple_error(instance, pred),
        'max_min_error': metrics.max_min_error(instance, pred),
    }


def single_machine_entries(instance, pred, rng, opt=None):
    """Run every single-machine algorithm on one (instance, prediction) pair."""
    opt = spt(instance) if opt is None else opt
    entries = []
    for lam in PRR_LAMBDAS:
        alg = PreferentialRoundRobin(lam).run(instance, pred)
        entries.append({'name': 'PRR', 'param': lam, 'opt': opt, 'alg': alg})
    for trust in PHASE_TRUSTS:
        alg = PhaseAlgorithm(trust, rng=rng).run(instance, pred)
        entries.append({'name': 'Phase', 'param': trust, 'opt': opt, 'alg': alg})
    for lam in TWO_STAGE_LAMBDAS:
        alg = TwoStage(lam).run(instance, pred)
        entries.append({'name': 'Two-Stage', 'param': lam, 'opt': opt, 'alg': alg})
    entries.append({'name': 'Round-Robin', 'param': 0.0, 'opt': opt, 'alg': round_robin(instance)})
    errors = prediction_errors(instance, pred)
    for entry in entries:
        entry.update(errors)
    return entries


def run_exp1_instance(task):
    """One instance of exp1: every sigma, every prediction, every algorithm."""
    params, seed = task
    rng = np.random.default_rng(seed)
    instance = generate_instance(params['instance_length'], params['alpha'], rng)
    opt = spt(instance)
    results = []
    for sigma_num in range(params['num_sigma']):
        sigma = params['step_sigma'] * sigma_num
        for _ in range(params['num_preds']):
            pred = generate_prediction(instance, sigma, params['rel_sigma'], rng)
            for entry in single_machine_entries(instance, pred, rng, opt):
                entry['sigma'] = sigma
                results.append(entry)
    return results


def run_exp2_trial(task):
    """One trial of exp2: the prediction of each round is the mean of the past rounds."""
    params, seed = task
    rng = np.random.default_rng(seed)
    ground_truth = generate_instance(params['instance_length'], params['alpha'], rng)
    history = []
    results = []
    for rnd in range(params['timesteps']):
        pred = create_mean_instance(history, params['instance_length'], params['alpha'], rng)
        instance = generate_prediction(ground_truth, params['sigma'], params['rel_sigma'], rng)
        for entry in single_machine_entries(instance, pred, rng):
            entry['round'] = rnd
            results.append(entry)
        history.append(instance)
    return results


def run_identical_instance(task):
    """One instance of the identical-machines sweep."""
    params, seed = task
    rng = np.random.default_rng(seed)
    n = params['instance_length']
    m = params['machines']
    scale = params['scale']
    instance = generate_instance(n, params['alpha'], rng)
    weights = generate_weights(n, rng=rng)
    releases = generate_releases(n, params['horizon'], rng)
    # clairvoyant reference: PWSPT fed the true lengths
    opt = PWSPT(m=m, scale=scale).run(instance, weights, releases)
    wdeq_obj = WDEQ(m=m, scale=scale).run(instance, weights, releases)
    results = []
    for sigma_num in range(params['num_sigma']):
        sigma = params['step_sigma'] * sigma_num
        pred = generate_prediction(instance, sigma, rng=rng)
        errors = prediction_errors(instance, pred)
        alg = PWSPT(m=m, scale=scale).run(instance, weights, releases, pred)
        results.append({'name': 'PWSPT', 'param': 0.0, 'sigma': sigma, 'opt': opt, 'alg': alg, **errors})
        results.append({'name': 'WDEQ', 'param': 1.0, 'sigma': sigma, 'opt': opt, 'alg': wdeq_obj, **errors})
        for rho in PTS_RHOS:
            alg = PTS(rho, m=m, scale=scale).run(instance, weights, releases, pred)
            results.append({'name': 'PTS', 'param': rho, 'sigma': sigma, 'opt': opt, 'alg': alg, **errors})
    return results


def spawn_seeds(base_seed, count):
    return [int(s.generate_state(1)[0]) for s in np.random.SeedSequence(base_seed).spawn(count)]


def run_tasks(func, tasks, workers=1):
    """Run independent tasks, optionally in a process pool; results keep task order."""
    results = []
    if workers > 1:
        with multiprocessing.Pool(workers) as pool:
            chunks = pool.imap(func, tasks)
            for idx, chunk in enumerate(chunks):
                results.extend(chunk)
                print(f"  [{idx + 1}/{len(tasks)}] done")
    else:
        for idx, task in enumerate(tasks):
            results.extend(func(task))
            print(f"  [{idx + 1}/{len(tasks)}] done")
    return results


def export(path, entries, fields):
    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=fields, extrasaction='ignore')
        writer.writeheader()
        for entry in entries:
            writer.writerow(entry)


def summarize_entries(entries, group_field, rng=None):
    """
    Competitive ratio statistics per (name, param, group_field), with a
    bootstrap confidence interval on the median ratio.
    """
    rng = rng or np.random.default_rng()
    ratios = {}
    for entry in entries:
        key = (entry['name'], entry['param'], entry[group_field])
        ratios.setdefault(key, []).append(metrics.competitive_ratio(entry['alg'], entry['opt']))
    rows = []
    for (name, param, group), vals in sorted(ratios.items()):
        stat = metrics.summarize(vals)
        _, stat['median_ci_lower'], stat['median_ci_upper'] = metrics.bootstrap_ci(
            vals, n_bootstrap=BOOTSTRAP_SAMPLES, rng=rng)
        rows.append({'name': name, 'param': param, group_field: group, **stat})
    return rows


def export_summary(path, rows, group_field):
    fields = ['name', 'param', group_field, 'n', 'mean', 'std_err', 'ci_lower', 'ci_upper', 'median',
              'median_ci_lower', 'median_ci_upper']
    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=fields)
        writer.writeheader()
        for row in rows:
            writer.writerow({k: (f"{v:.6f}" if isinstance(v, float) else v) for k, v in row.items()})


def print_summary(rows, group_field):
    print(f"\n{'Algorithm':<12} {'Param':>6} {group_field:>8} {'Runs':>5} {'Ratio':>18} {'Median':>8} {'Median 95% CI':>20}")
    print("-" * 85)
    for row in rows:
        print(f"{row['name']:<12} {row['param']:>6.2f} {row[group_field]:>8} {row['n']:>5} "
              f"{row['mean']:>8.4f}±{1.96 * row['std_err']:<8.4f} {row['median']:>8.4f} "
              f"[{row['median_ci_lower']:.4f}, {row['median_ci_upper']:.4f}]")


def summary_path(output):
    if output.endswith('.csv'):
        return output[:-4] + '_summary.csv'
    return output + '_summary.csv'


def main(argv=None):
    args = parse_args(argv)
    base_seed = args.base_seed if args.base_seed is not None else int(np.random.randint(0, 2**31))

    print("=" * 64)
    print(f"Experiment: {args.experiment}")
    print(f"  Base seed: {base_seed}")
    print(f"  Workers: {args.workers}")
    print(f"  Timestamp: {datetime.now().isoformat()}")
    print("=" * 64)

    if args.experiment == 'exp1':
        params = {
            'instance_length': args.instance_length,
            'alpha': args.alpha,
            'num_sigma': args.num_sigma,
            'step_sigma': args.step_sigma,
            'num_preds': args.num_preds,
            'rel_sigma': args.rel_sigma,
        }
        seeds = spawn_seeds(base_seed, args.num_instances)
        analyse_instances([generate_instance(args.instance_length, args.alpha, np.random.default_rng(s))
                           for s in seeds])
        entries = run_tasks(run_exp1_instance, [(params, s) for s in seeds], args.workers)
        fields, group_field = ENTRY_FIELDS, 'sigma'
    elif args.experiment == 'exp2':
        params = {
            'instance_length': args.instance_length,
            'alpha': args.alpha,
            'sigma': args.sigma,
            'rel_sigma': args.rel_sigma,
            'timesteps': args.timesteps,
        }
        seeds = spawn_seeds(base_seed, args.trials)
        entries = run_tasks(run_exp2_trial, [(params, s) for s in seeds], args.workers)
        fields, group_field = EXP2_FIELDS, 'round'
    else:
        params = {
            'instance_length': args.instance_length,
            'alpha': args.alpha,
            'machines': args.machines,
            'scale': args.scale,
            'horizon': args.horizon,
            'num_sigma': args.num_sigma,
            'step_sigma': args.step_sigma,
        }
        seeds = spawn_seeds(base_seed, args.num_instances)
        entries = run_tasks(run_identical_instance, [(params, s) for s in seeds], args.workers)
        fields, group_field = ENTRY_FIELDS, 'sigma'

    export(args.output, entries, fields)
    print(f"\n✓ {len(entries)} results saved to {args.output}")

    rows = summarize_entries(entries, group_field, np.random.default_rng(base_seed))
    print_summary(rows, group_field)
    stats_file = summary_path(args.output)
    export_summary(stats_file, rows, group_field)
    print(f"✓ Summary statistics saved to {stats_file}")
    print(f"  Reproducibility: run with --base-seed {base_seed} to recreate")
    return 0


if __name__ == "__main__":
    sys.exit(main())
