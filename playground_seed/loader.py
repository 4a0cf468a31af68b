from __future__ import annotations

import logging
import time
from typing import Iterable, Iterator, List, Sequence, Tuple

from tqdm import tqdm

from .errors import BulkInsertError
from .executor import SqlExecutor
from .schema import TableMeta, insert_sql

DEFAULT_BATCH_SIZE = 100


def batched(rows: Iterable[Tuple], size: int) -> Iterator[List[Tuple]]:
    batch: List[Tuple] = []
    for row in rows:
        batch.append(row)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


class BulkLoader:
    """Sends rows as multi-row INSERTs, one statement per batch."""

    def __init__(self, executor: SqlExecutor, batch_size: int = DEFAULT_BATCH_SIZE, progress: bool = False):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.executor = executor
        self.batch_size = batch_size
        self.progress = progress

    def load(self, table: TableMeta, rows: Sequence[Tuple]) -> int:
        start = time.time()
        total = 0
        batches = batched(rows, self.batch_size)
        if self.progress:
            n_batches = (len(rows) + self.batch_size - 1) // self.batch_size
            batches = tqdm(batches, total=n_batches, desc=table.name, unit="batch")

        for number, batch in enumerate(batches, start=1):
            res = self.executor.execute(insert_sql(table, batch))
            if not res.ok:
                raise BulkInsertError(
                    table=table.name,
                    batch=number,
                    first_row=total + 1,
                    last_row=total + len(batch),
                    message=res.message,
                    detail=res.detail,
                )
            total += len(batch)

        logging.info("Inserted %s rows=%d in %.2fs", table.name, total, time.time() - start)
        return total
