"""
Temporal backend package.

Kept minimal: workflow modules import only ``fulfillment.definitions`` and
``fulfillment.domain``, so nothing here may be imported at package level
that the workflow sandbox would reject.
"""
