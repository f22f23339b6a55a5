"""
Pole localization node.

Receives scan frames, builds the pole map once, then publishes the platform
pose and the pole positions every cycle.
"""

import sys
import time
import signal
import logging
import argparse
import traceback
from typing import Optional

import config
from network_server import ScanDataServer
from position_protocol import PosePublisher, print_pose_standard
from pole_core.errors import InsufficientLandmarksDetected
from pole_core.localization import (
    PoleLocalizationPipeline,
    PipelineConfig,
    ScanClusterConfig,
    InitiationConfig,
    PoseEstimatorConfig,
    CycleResult,
)
from pole_core.metrics import get_metrics

logger = logging.getLogger(__name__)


def build_pipeline_config() -> PipelineConfig:
    """Translate the config module dicts into component configs."""
    scanner = config.SCANNER_CONFIG
    initiation = config.INITIATION_CONFIG
    localization = config.LOCALIZATION_CONFIG

    return PipelineConfig(
        cluster_config=ScanClusterConfig(
            intensity_threshold=scanner["intensity_threshold"],
            cluster_distance_m=scanner["cluster_distance_m"],
        ),
        initiation_config=InitiationConfig(
            window_s=initiation["window_s"],
            min_cycles=initiation["min_cycles"],
            nominal_rate_hz=initiation["nominal_rate_hz"],
            cluster_distance_m=scanner["cluster_distance_m"],
        ),
        estimator_config=PoseEstimatorConfig(
            inflation_step_m=localization["inflation_step_m"],
            max_inflation_steps=localization["max_inflation_steps"],
            newton_tolerance_rad=localization["newton_tolerance_rad"],
            max_newton_iterations=localization["max_newton_iterations"],
            consistency_tolerance_rad=localization["consistency_tolerance_rad"],
        ),
    )


class PoleLocalizationNode:
    """Control loop plus transport adapters."""

    def __init__(
        self,
        data_server: Optional[ScanDataServer] = None,
        publisher: Optional[PosePublisher] = None,
        pipeline: Optional[PoleLocalizationPipeline] = None,
        clock=time.time,
    ):
        """
        Initialize node.

        Args:
            data_server: Scan source (defaults to TCP server from config)
            publisher: Pose/landmark sink (defaults to config consumer)
            pipeline: Localization pipeline (defaults to config values)
            clock: Time source in seconds
        """
        self.running = False
        self.clock = clock

        self.data_server = data_server or ScanDataServer(
            host=config.SERVER_CONFIG["host"],
            port=config.SERVER_CONFIG["port"],
        )
        self.publisher = publisher or PosePublisher(
            host=config.PUBLISH_CONFIG["host"],
            port=config.PUBLISH_CONFIG["port"],
            protocol=config.PUBLISH_CONFIG["protocol"],
            reconnect_interval=config.PUBLISH_CONFIG["reconnect_interval"],
        )
        self.pipeline = pipeline or PoleLocalizationPipeline(build_pipeline_config())
        self.metrics = get_metrics()

        self.cycle_count = 0
        self.pose_count = 0
        self.fatal_error: Optional[Exception] = None
        self._stopped = False

        logger.info("Started localization node")

    def run(self):
        """Start transport and loop until stop() is called."""
        if not self.data_server.start():
            logger.error("Failed to start scan server")
            return

        if config.OUTPUT_CONFIG["enable_publish"]:
            if not self.publisher.connect():
                logger.warning("Consumer unreachable, printing to console only")

        self.running = True
        try:
            self._run_loop()
        finally:
            self.stop()

    def _run_loop(self):
        period = 1.0 / config.LOCALIZATION_CONFIG["loop_rate_hz"]

        while self.running:
            started = time.monotonic()
            try:
                self.run_once()
            except InsufficientLandmarksDetected as e:
                self.metrics.increment_drop(e.reason)
                logger.critical(f"Initiation failed, cannot build map: {e}")
                self.fatal_error = e
                self.running = False
                break
            except Exception as e:
                logger.error(f"Control loop error: {e}")
                traceback.print_exc()
                time.sleep(0.1)

            elapsed = time.monotonic() - started
            self.metrics.record_histogram('cycle_time_ms', elapsed * 1000.0)
            if elapsed < period:
                time.sleep(period - elapsed)

    def run_once(self) -> CycleResult:
        """
        One iteration: newest frame -> pipeline -> publish.

        Raises:
            InsufficientLandmarksDetected: Initiation could not build a map
        """
        frame = self.data_server.take_frame()
        result = self.pipeline.step(frame, self.clock())
        self.cycle_count += 1
        self._publish(result)
        return result

    def _publish(self, result: CycleResult):
        if not result.landmarks:
            return

        t = self.clock()
        publish = config.OUTPUT_CONFIG["enable_publish"]

        if publish:
            self.publisher.publish_landmarks(lm.to_position(t) for lm in result.landmarks)

        if result.pose is None:
            return

        self.pose_count += 1
        if publish:
            self.publisher.publish_pose(result.pose)

        if config.OUTPUT_CONFIG["enable_console_print"]:
            if self.pose_count % config.OUTPUT_CONFIG["print_interval"] == 0:
                print_pose_standard(result.pose)

    def stop(self):
        """Stop the loop and release transport resources."""
        if self._stopped:
            return
        self._stopped = True

        logger.info("Stopping localization node...")
        self.running = False
        self.data_server.stop()
        self.publisher.disconnect()
        self.metrics.print_summary()
        logger.info("Location node shutting down!")


def main():
    parser = argparse.ArgumentParser(description='Pole localization node')
    parser.add_argument('--host', '-H', type=str, default=None,
                        help='Scan server listen address')
    parser.add_argument('--port', '-p', type=int, default=None,
                        help='Scan server listen port')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, config.LOGGING_CONFIG["level"]),
        format=config.LOGGING_CONFIG["format"]
    )
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.host:
        config.SERVER_CONFIG["host"] = args.host
    if args.port:
        config.SERVER_CONFIG["port"] = args.port

    node = PoleLocalizationNode()

    def _signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, stopping...")
        node.running = False

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    node.run()
    return 1 if node.fatal_error else 0


if __name__ == "__main__":
    sys.exit(main())
