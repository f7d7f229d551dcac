"""
Core models — settings, receipts and persisted host state.
"""

from tenvctl.core.models.action import Receipt  # noqa: F401
from tenvctl.core.models.settings import TenvSettings  # noqa: F401
from tenvctl.core.models.state import HostState, PackageRecordState, RunRecord  # noqa: F401
