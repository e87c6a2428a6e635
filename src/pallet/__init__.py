"""Validation of pallet call and error declarations."""

from pallet.call import CallArg, CallDef, CallVariantDef, parse_call_def
from pallet.error import ErrorDef, ErrorVariant, parse_error_def
from pallet.helper import (
    FrameInstanceUsageChecker,
    InstanceUsage,
    InstanceUsageChecker,
    check_dispatchable_first_arg,
)
from pallet.module import (
    PalletScan,
    check_instance_consistency,
    scan_file,
    scan_source,
)

__all__ = [
    "CallArg",
    "CallDef",
    "CallVariantDef",
    "ErrorDef",
    "ErrorVariant",
    "FrameInstanceUsageChecker",
    "InstanceUsage",
    "InstanceUsageChecker",
    "PalletScan",
    "check_dispatchable_first_arg",
    "check_instance_consistency",
    "parse_call_def",
    "parse_error_def",
    "scan_file",
    "scan_source",
]
