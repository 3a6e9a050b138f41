from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

# IMPORTANT: use Base from db.py
from tracking.db import Base
from tracking.utils.datetime_utils import utcnow

# Tunables shared by DefaultConfig and DeviceConfig, as model attribute names.
# Values are stored as text to tolerate device-side formatting.
CONFIG_ATTRIBUTES = (
    "gps_timer",
    "config_timer",
    "upload_timer",
    "retry_counter",
    "angle_threshold",
    "over_speeding_threshold",
    "travel_start_timer",
    "travel_stop_timer",
    "moving_timer",
    "stop_timer",
    "distance_threshold",
    "heartbeat_timer",
    "live_status_update_timer",
    "base_url",
)

DEFAULT_CONFIG_ID = 1


class Device(Base):
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    imei = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    phone_no = Column(String, nullable=True)
    email_address = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    config = relationship("DeviceConfig", back_populates="device", uselist=False)
    locations = relationship("LocationData", back_populates="device")


class DefaultConfig(Base):
    __tablename__ = "default_configs"
    # singleton: the only legal primary key is 1
    __table_args__ = (CheckConstraint(f"id = {DEFAULT_CONFIG_ID}", name="default_configs_singleton"),)

    id = Column(Integer, primary_key=True, default=DEFAULT_CONFIG_ID, autoincrement=False)
    gps_timer = Column(String, nullable=False)
    config_timer = Column(String, nullable=False)
    upload_timer = Column(String, nullable=False)
    retry_counter = Column(String, nullable=False)
    angle_threshold = Column(String, nullable=False)
    over_speeding_threshold = Column(String, nullable=False)
    travel_start_timer = Column(String, nullable=False)
    travel_stop_timer = Column(String, nullable=False)
    moving_timer = Column(String, nullable=False)
    stop_timer = Column(String, nullable=False)
    distance_threshold = Column(String, nullable=False)
    heartbeat_timer = Column(String, nullable=False)
    live_status_update_timer = Column(String, nullable=False)
    base_url = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class DeviceConfig(Base):
    __tablename__ = "device_configs"

    id = Column(Integer, primary_key=True, index=True)
    # unique FK enforces the 1:1 device/config relation
    device_imei = Column(String, ForeignKey("devices.imei"), unique=True, nullable=False)
    gps_timer = Column(String, nullable=True)
    config_timer = Column(String, nullable=True)
    upload_timer = Column(String, nullable=True)
    retry_counter = Column(String, nullable=True)
    angle_threshold = Column(String, nullable=True)
    over_speeding_threshold = Column(String, nullable=True)
    travel_start_timer = Column(String, nullable=True)
    travel_stop_timer = Column(String, nullable=True)
    moving_timer = Column(String, nullable=True)
    stop_timer = Column(String, nullable=True)
    distance_threshold = Column(String, nullable=True)
    heartbeat_timer = Column(String, nullable=True)
    live_status_update_timer = Column(String, nullable=True)
    base_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    device = relationship("Device", back_populates="config")


class LocationData(Base):
    __tablename__ = "location_data"

    id = Column(Integer, primary_key=True, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)
    altitude = Column(Float, nullable=True)
    bearing = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    device_rdt = Column(String, nullable=True)
    gmt_settings = Column(String, nullable=True)
    ig_status = Column(Integer, nullable=True)
    imei = Column(String, index=True, nullable=True)
    local_primary_id = Column(String, nullable=True)
    name = Column(String, nullable=True)
    phone_no = Column(String, nullable=True)
    email_address = Column(String, nullable=True)
    provider = Column(String, nullable=True)
    reason = Column(String, nullable=True)
    version_no = Column(String, nullable=True)
    # epoch milliseconds, kept as a 64-bit integer end to end
    time = Column(BigInteger, nullable=True)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    device = relationship("Device", back_populates="locations")
