import logging

from .functions import Functions

logger_scenario = logging.getLogger(Functions.SCENARIO_LOG)
logger_probe = logging.getLogger(Functions.PROBE_LOG)
logger_cluster = logging.getLogger(Functions.CLUSTER_LOG)

Functions.setup_log(logger_scenario)
Functions.setup_log(logger_probe)
Functions.setup_log(logger_cluster)
