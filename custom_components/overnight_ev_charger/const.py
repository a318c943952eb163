"""Constants for the Overnight EV Charger integration."""

from datetime import timedelta

DOMAIN = "overnight_ev_charger"

# Configuration Keys - vehicle entities
CONF_SOC_SENSOR = "soc_sensor_entity_id"
CONF_CHARGING_SENSOR = "charging_sensor_entity_id"
CONF_PLUG_SENSOR = "plug_sensor_entity_id"
CONF_CHARGE_SWITCH = "charge_switch_entity_id"
CONF_CLIMATE_ENTITY = "climate_entity_id"
CONF_NOTIFY_SERVICE = "notify_service"

# Configuration Keys - battery detection
CONF_CAPACITY_SENSOR = "capacity_sensor_entity_id"
CONF_SOH_SENSOR = "soh_sensor_entity_id"
CONF_CAC_SENSOR = "cac_sensor_entity_id"
CONF_VOLTAGE_SENSOR = "voltage_sensor_entity_id"
CONF_BATTERY_CAPACITY = "battery_capacity_kwh"
CONF_BATTERY_SOH = "battery_soh_percent"

# Configuration Keys - schedule
CONF_CHEAP_WINDOW_START = "cheap_window_start"
CONF_CHEAP_WINDOW_END = "cheap_window_end"
CONF_TARGET_SOC = "target_soc_percent"
CONF_CHARGE_RATE = "charge_rate_kw"
CONF_READY_BY = "ready_by"

# Configuration Keys - pricing
CONF_CHEAP_RATE = "cheap_rate_per_kwh"
CONF_STANDARD_RATE = "standard_rate_per_kwh"

# Defaults
DEFAULT_NAME = "Overnight EV Charger"
DEFAULT_CHEAP_WINDOW_START = "23:30:00"
DEFAULT_CHEAP_WINDOW_END = "05:30:00"
DEFAULT_TARGET_SOC = 80.0
DEFAULT_CHARGE_RATE = 1.8
DEFAULT_CHEAP_RATE = 0.09
DEFAULT_STANDARD_RATE = 0.28

# Battery detection
DEFAULT_BATTERY_CAPACITY = 40.0
DEFAULT_BATTERY_SOH = 100.0
DEFAULT_PACK_VOLTAGE = 360.0
MIN_PLAUSIBLE_CAPACITY = 10.0
MAX_PLAUSIBLE_CAPACITY = 250.0
MIN_PLAUSIBLE_SOH = 50.0
MAX_PLAUSIBLE_SOH = 100.0
BATTERY_CACHE_SECONDS = 60

# Input limits
MIN_TARGET_SOC = 20.0
MAX_TARGET_SOC = 100.0
MIN_CHARGE_RATE = 1.0
MAX_CHARGE_RATE = 350.0

# Tick
TICK_INTERVAL = timedelta(seconds=60)

# Interruption recovery
MAX_RETRY_ATTEMPTS = 3
RETRY_BACKOFF = {
    1: timedelta(minutes=2),
    2: timedelta(minutes=5),
    3: timedelta(minutes=10),
}
WAKE_SETTLE_DELAY = timedelta(seconds=10)
WAKE_RESUME_DELAY = timedelta(seconds=5)

# Vehicle commands
COMMAND_CHARGE_START = "charge-start"
COMMAND_CHARGE_STOP = "charge-stop"
COMMAND_CLIMATE_ON = "climate-on"
COMMAND_CLIMATE_OFF = "climate-off"

# Telemetry metrics
METRIC_SOC = "soc"
METRIC_CHARGING = "charging"
METRIC_PLUGGED_IN = "plugged_in"
METRIC_CAPACITY = "capacity"
METRIC_SOH = "soh"
METRIC_CAC = "cac"
METRIC_VOLTAGE = "voltage"

# Notification levels / categories
LEVEL_INFO = "info"
LEVEL_ALERT = "alert"
CATEGORY_SCHEDULE = "charge.schedule"
CATEGORY_STATUS = "charge.status"
CATEGORY_MANUAL = "charge.manual"
CATEGORY_CONFIG = "charge.config"
CATEGORY_RECOVERY = "charge.recovery"

# Storage
STORAGE_KEY = f"{DOMAIN}.settings"
STORAGE_VERSION = 1

# Dispatcher signal
SIGNAL_UPDATE = f"{DOMAIN}_update"

# Services
SERVICE_SET_TARGET = "set_target"
SERVICE_SET_READY_BY = "set_ready_by"
SERVICE_CLEAR_READY_BY = "clear_ready_by"
SERVICE_SET_WINDOW = "set_window"
SERVICE_SET_CHARGE_RATE = "set_charge_rate"
SERVICE_SET_RATES = "set_rates"
SERVICE_START = "start"
SERVICE_STOP = "stop"
SERVICE_STATUS = "status"
SERVICE_NEXT_CHARGE = "next_charge"
