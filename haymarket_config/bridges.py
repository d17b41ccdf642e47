"""
Bridges from ``MarketplaceConfig`` to kernel inputs.

The kernel never imports ``haymarket_config``; module services call these
to turn configuration into the kernel's own value types.
"""

from haymarket_config.schema import MarketplaceConfig, NumberingDef
from haymarket_kernel.services.numbering_service import NumberFormat, NumberFormats
from haymarket_kernel.services.sequence_service import SequenceService


def _format(sequence_name: str, numbering: NumberingDef) -> NumberFormat:
    return NumberFormat(
        sequence_name=sequence_name,
        prefix=numbering.prefix,
        first_value=numbering.first_value,
    )


def build_number_formats(config: MarketplaceConfig) -> NumberFormats:
    return NumberFormats(
        stack_id=_format(SequenceService.LISTING_STACK, config.stack_id),
        po_number=_format(SequenceService.PURCHASE_ORDER, config.po_number),
        load_number=_format(SequenceService.LOAD, config.load_number),
    )
