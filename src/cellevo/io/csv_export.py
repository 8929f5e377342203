"""Tabular dumps of simulation snapshots.

`cells_csv` reproduces the per-cell export of the interactive app:

    Step #<tick>
    index,x,y,size,flagellum_size,stomach_size,gestation_steps
    0,412,388,30.0,5.0,10.0,200.0
    ...
    AVERAGE,,,30.0,5.0,10.0,200.0
"""
import io
import logging
import os

import pandas as pd

logger = logging.getLogger(__name__)

CELL_COLUMNS = ['index', 'x', 'y', 'size', 'flagellum_size', 'stomach_size', 'gestation_steps']
GENE_COLUMNS = CELL_COLUMNS[3:]


def cells_frame(snapshot) -> pd.DataFrame:
    """One row per cell of ``snapshot`` with position and gene columns."""
    rows = [
        {
            'index': c.index,
            'x': c.x,
            'y': c.y,
            'size': c.genes.size,
            'flagellum_size': c.genes.flagellum_size,
            'stomach_size': c.genes.stomach_size,
            'gestation_steps': c.genes.gestation_steps,
        }
        for c in snapshot.cells
    ]
    return pd.DataFrame(rows, columns=CELL_COLUMNS)


def cells_csv(snapshot) -> str:
    """CSV text of ``snapshot`` with a leading step line and a trailing AVERAGE row."""
    df = cells_frame(snapshot)
    if df.empty:
        logger.warning('[EXPORT] extinction reached at tick %s; no cells to average', snapshot.tick)
        averages = {col: '' for col in GENE_COLUMNS}
    else:
        averages = df[GENE_COLUMNS].mean().to_dict()
    average_row = pd.DataFrame([{'index': 'AVERAGE', 'x': '', 'y': '', **averages}], columns=CELL_COLUMNS)
    table = average_row if df.empty else pd.concat([df.astype(object), average_row], ignore_index=True)

    buf = io.StringIO()
    buf.write(f'Step #{snapshot.tick}\n')
    table.to_csv(buf, index=False, lineterminator='\n')
    return buf.getvalue()


def write_cells_csv(snapshot, path) -> str:
    """Write `cells_csv(snapshot)` to ``path`` and return the path."""
    path = os.fspath(path)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w', newline='') as f:
        f.write(cells_csv(snapshot))
    logger.info('[EXPORT] wrote %s cells at tick %s to %s', len(snapshot.cells), snapshot.tick, path)
    return path
