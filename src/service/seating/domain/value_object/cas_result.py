from typing import Any, Optional

import attrs


@attrs.define(frozen=True)
class CasResult:
    """
    Outcome of one compare-and-swap.

    committed=True: `record` is the newly stored record.
    committed=False: nothing changed and `record` is what is stored right now.
    """

    committed: bool
    record: Any
    previous: Optional[Any] = None
