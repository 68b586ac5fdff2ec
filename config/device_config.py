import os

from dotenv import load_dotenv

load_dotenv()


class DeviceConfig:
    """
    Device tracking and validation settings

    Centralizes channel set, timing windows, storage location and the
    defaults baked into the configuration command sent to devices
    """

    # Monitored signal lines per device (fixed set)
    CHANNELS = ('1', '2', '3')

    # Timing
    CHANNEL_ACTIVE_WINDOW = 1.0  # Seconds a channel stays active after data
    LIVENESS_SWEEP_INTERVAL = 30  # Seconds between liveness sweeps
    LIVENESS_TIMEOUT = 29.5  # Just under the sweep period: one missed tick flips offline

    # Payloads starting with this character are broker acknowledgments
    # ("Configuration data accepted!")
    ACK_SENTINEL = 'C'

    # Durable store of validated devices
    STORAGE_FILE = os.getenv('VALIDATED_DEVICES_FILE', './data/dbDevices.json')
    EXPORT_FILENAME = 'dispositivos_validados.txt'

    # Network credentials pushed to devices
    WIFI_SSID = os.getenv('WIFI_SSID', 'DefaultNetwork')
    WIFI_PASSWORD = os.getenv('WIFI_PASSWORD', '')

    # Command defaults
    WIFI_TIMEZONE = -3
    WIFI_AP = 2
    WIFI_IL = 180
    COMMAND_CLIENT_ID = 'device/register'
    PIN_TV = 30
    PIN_TC = 1000
    PIN_VP = 200
