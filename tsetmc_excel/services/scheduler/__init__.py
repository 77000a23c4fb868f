from tsetmc_excel.services.scheduler.poller import Poller

__all__ = ["Poller"]
