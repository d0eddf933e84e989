"""Export functionality for CSV and JSON."""

import json

import pandas as pd

from ..engine.accumulator import DrawAccumulator
from ..simulation.runner import ScheduleResult


def result_to_frame(result: ScheduleResult) -> pd.DataFrame:
    """Per-period rows of a schedule replay as a DataFrame."""
    return pd.DataFrame(result.rows)


def observations_to_frame(accumulator: DrawAccumulator) -> pd.DataFrame:
    """Retained observation log, oldest to newest."""
    data = [
        {
            'period': period_id,
            'available': observation.available,
            'disbursed': observation.disbursed,
        }
        for period_id, observation in accumulator.observations()
    ]
    return pd.DataFrame(data, columns=['period', 'available', 'disbursed'])


def export_csv(result: ScheduleResult, filepath: str):
    """Export schedule replay rows to CSV."""
    df = result_to_frame(result)
    df.to_csv(filepath, index=False)


def export_json(result: ScheduleResult, filepath: str):
    """Export schedule replay results to JSON."""
    export_data = {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'contributions': [
            {
                'period': c.period_id,
                'contributor': c.contributor,
                'amount': c.amount
            }
            for c in result.contributions
        ],
        'rows': result.rows,
        'final_metrics': result.final_metrics
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
