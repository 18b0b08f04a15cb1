"""Forward DHT22 temperature and humidity readings to a Graphite backend."""

__version__ = "0.1.0"
