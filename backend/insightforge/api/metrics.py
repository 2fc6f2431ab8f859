"""
Metrics endpoint for performance monitoring.
"""
from fastapi import APIRouter
from insightforge.core.performance import PerformanceMonitor
from insightforge.core.cache import get_workbook_cache
from insightforge.core.storage import get_dataset_store

router = APIRouter()


@router.get("/metrics")
async def get_metrics():
    """
    Timing statistics for every tracked operation, plus the size of the
    parsed-workbook cache and the dataset store.
    """
    store = get_dataset_store()
    store.cleanup_expired()
    return {
        'performance': PerformanceMonitor.get_all_metrics(),
        'cache': {
            'workbook_cache': get_workbook_cache().get_stats(),
            'dataset_store': {'size': store.size()},
        }
    }
