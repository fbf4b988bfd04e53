"""Domain layer for lexbill application."""

__all__ = [
    "CaseService",
    "CaseRateConfigurationService",
    "BillingRateService",
    "RateEngine",
    "TimerService",
    "TimeEntryService",
    "TimeEntryValidator",
    "TimerConversionService",
]

_SERVICES = {
    "CaseService": "lexbill.domain.cases",
    "CaseRateConfigurationService": "lexbill.domain.case_rates",
    "BillingRateService": "lexbill.domain.billing_rates",
    "RateEngine": "lexbill.domain.rates",
    "TimerService": "lexbill.domain.timer",
    "TimeEntryService": "lexbill.domain.time_entry",
    "TimeEntryValidator": "lexbill.domain.validation",
    "TimerConversionService": "lexbill.domain.conversion",
}


# Services import lexbill.config, which imports the error module from this
# package, so they are loaded on first access only
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
