from onlinevar import exceptions  # NOQA
from onlinevar import logging  # NOQA
from onlinevar._accumulator import Accumulator  # NOQA
from onlinevar._accumulator import merge_all  # NOQA
from onlinevar._accumulator import SERIALIZED_SIZE  # NOQA
from onlinevar._io import ByteSink  # NOQA
from onlinevar._io import ByteSource  # NOQA
from onlinevar.version import __version__  # NOQA
