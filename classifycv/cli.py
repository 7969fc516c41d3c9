"""
Command line entry point.

Examples:
    classifycv --data spectra.csv --label-column class --classifier RF --out results/
    classifycv --data images.npy --labels labels.npy --config options.yaml
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd

from .classifiers import CLASSIFIERS, RESAMPLING_METHODS
from .driver import classifycv
from .feature_selection import FEATURE_SELECTION_METHODS
from .options import load_options, make_options
from .roc import OPERATING_POINT_METHODS


def parse_params(text: str) -> List[List[float]]:
    """Parse '50,100,200;10,20' into [[50, 100, 200], [10, 20]]."""
    params = []
    for dimension in text.split(';'):
        values = [v.strip() for v in dimension.split(',') if v.strip()]
        if not values:
            raise argparse.ArgumentTypeError(f"Empty parameter dimension in '{text}'")
        try:
            params.append([int(v) if v.lstrip('-').isdigit() else float(v) for v in values])
        except ValueError:
            raise argparse.ArgumentTypeError(f"Parameters must be numbers, got '{text}'")
    return params


def load_dataset(data_path: str, label_column: Optional[str] = None, labels_path: Optional[str] = None,
                 drop_columns: Optional[List[str]] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Load samples and classes.

    CSV files hold one sample per row with the class in label_column.
    .npy files hold the data array and need a separate labels file.
    """
    path = Path(data_path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    if path.suffix == '.npy':
        if labels_path is None:
            raise ValueError("--labels is required with .npy data")
        labels_file = Path(labels_path)
        if not labels_file.exists():
            raise FileNotFoundError(f"Labels file not found: {labels_file}")
        classes = np.load(labels_file, allow_pickle=False).ravel()
        return np.load(path, allow_pickle=False), classes

    df = pd.read_csv(path)
    if label_column is None or label_column not in df.columns:
        raise ValueError(f"Label column '{label_column}' not found. Columns: {list(df.columns)}")
    classes = df[label_column].to_numpy()
    features = df.drop(columns=[label_column] + list(drop_columns or []))
    return features.to_numpy(dtype=float), classes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='classifycv',
        description='Cross-validated classification with parameter search and ROC operating point selection')
    parser.add_argument('--data', required=True, help='CSV table or .npy array of samples')
    parser.add_argument('--label-column', default='class', help='class column of a CSV table')
    parser.add_argument('--labels', help='.npy file of classes for .npy data')
    parser.add_argument('--drop-columns', nargs='*', default=[], help='CSV columns that are not features')
    parser.add_argument('--config', help='YAML file with classification options')
    parser.add_argument('--classifier', type=str.upper, choices=CLASSIFIERS)
    parser.add_argument('--numfolds', type=int)
    parser.add_argument('--featureselection', type=str.upper, choices=list(FEATURE_SELECTION_METHODS))
    parser.add_argument('--params', type=parse_params,
                        help="grid values, dimensions separated by ';' e.g. '50,100;20,40'")
    parser.add_argument('--operating-point', choices=OPERATING_POINT_METHODS)
    parser.add_argument('--stratified', action='store_true', default=None)
    parser.add_argument('--resampling', choices=RESAMPLING_METHODS)
    parser.add_argument('--random-state', type=int)
    parser.add_argument('--cnn-epochs', type=int, help='training epochs of the CNN backend')
    parser.add_argument('--hideprogress', action='store_true', default=None)
    parser.add_argument('--verbose', action='store_true', default=None)
    parser.add_argument('--out', help='directory for results')
    parser.add_argument('--no-plots', action='store_true', help='skip figures when saving results')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {
        'classifier': args.classifier,
        'numfolds': args.numfolds,
        'featureselection': args.featureselection,
        'params': args.params,
        'operating_point': args.operating_point,
        'stratified': args.stratified,
        'resampling': args.resampling,
        'random_state': args.random_state,
        'cnn_epochs': args.cnn_epochs,
        'hideprogress': args.hideprogress,
        'verbose': args.verbose,
    }
    if args.config:
        options = load_options(args.config, **overrides)
    else:
        options = make_options({k: v for k, v in overrides.items() if v is not None})

    data, classes = load_dataset(args.data, args.label_column, args.labels, args.drop_columns)
    result = classifycv(data, classes, options)

    print("\n== Done ==\n", json.dumps(result.summary(), indent=2))
    if args.out:
        result.save(args.out, plots=not args.no_plots)
    return 0


if __name__ == "__main__":
    sys.exit(main())
