from farmreport.schemas.records import DailyRecord

FARM_ID = 7
LOT = "L24"
WEEK = "S2"


def unwrap(j):
    """Return API data payload regardless of envelope shape."""
    if isinstance(j, dict) and "ok" in j and "data" in j:
        return j["data"]
    return j

def is_enveloped(j) -> bool:
    return isinstance(j, dict) and "ok" in j and "data" in j

def rec(day, **fields) -> DailyRecord:
    """Shorthand for a weekly tracking row using the upstream field names."""
    return DailyRecord.model_validate({"recordDate": day, **fields})

def token_for(role: str, **claims) -> str:
    from farmreport.core.security import create_access

    return create_access("pytest@example.com", role, **claims)
