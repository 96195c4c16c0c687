from sqlalchemy import Column, String, Float

from models.base_model import BaseModel, Base


class DeviceStat(BaseModel, Base):
    """A single metric sample reported for a device."""
    __tablename__ = "device_stats"

    device_name = Column(String(100), nullable=True)
    temperature = Column(Float, nullable=False)


# Allow-list of metrics the aggregate worker may average: name -> column
METRIC_COLUMNS = {
    "temperature": DeviceStat.temperature,
}


def resolve_metric(name):
    """Return (canonical_name, column) for an allowed metric, else None."""
    key = (name or "").strip().lower()
    column = METRIC_COLUMNS.get(key)
    if column is None:
        return None
    return key, column
