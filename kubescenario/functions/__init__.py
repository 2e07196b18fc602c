from .consts import Consts
from .functions import Functions
from .loggers import logger_cluster, logger_probe, logger_scenario
from .suite_env import SuiteEnv
