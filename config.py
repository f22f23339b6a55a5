"""
Pole localization node configuration.
"""

# Scan input server (receives frames from the scanner bridge)
SERVER_CONFIG = {
    "host": "0.0.0.0",        # Listen on all interfaces
    "port": 8765,             # Listen port
    "protocol": "tcp",
    "reconnect_interval": 2.0,       # Seconds between attempts while the consumer is down
}

# Pose / landmark consumer
PUBLISH_CONFIG = {
    "host": "127.0.0.1",
    "port": 8766,
    "reconnect_interval": 2.0,        # Seconds between attempts while the consumer is down
    "protocol": "tcp",
}

# Pole extraction
SCANNER_CONFIG = {
    "intensity_threshold": 1000.0,    # Reflective tape returns above this
    "cluster_distance_m": 0.2,        # Beams closer than this belong to one pole
}

# Initiation (platform must stand still)
INITIATION_CONFIG = {
    "window_s": 2.0,                  # Data gathering window
    "min_cycles": 25,                 # Scans required in one window
    "nominal_rate_hz": 25.0,
}

# Localization
LOCALIZATION_CONFIG = {
    "loop_rate_hz": 25.0,
    "inflation_step_m": 0.001,        # Circle slack per step
    "max_inflation_steps": 100000,
    "newton_tolerance_rad": 0.001,
    "max_newton_iterations": 50,
    "consistency_tolerance_rad": 0.1,
}

# Output
OUTPUT_CONFIG = {
    "enable_publish": False,          # Send pose/landmarks to consumer
    "enable_console_print": True,
    "print_interval": 25,             # Print every 25th pose
}

# Logging
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}
