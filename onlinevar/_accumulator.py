import collections.abc
import io
import struct
from typing import Any
from typing import Dict
from typing import Iterable
from typing import Optional
from typing import Tuple
from typing import Union

import numpy

from onlinevar import logging
from onlinevar._io import _read_fully
from onlinevar._io import _write_fully
from onlinevar._io import ByteSink
from onlinevar._io import ByteSource


_logger = logging.get_logger(__name__)

_UINT64 = struct.Struct(">Q")
_FLOAT64 = struct.Struct(">d")

# Field order of the binary state: count, mean, sum of weights, sum of squared weights and
# weighted sum of squared deviations.
_LAYOUT = (_UINT64, _FLOAT64, _FLOAT64, _FLOAT64, _FLOAT64)

SERIALIZED_SIZE = sum(codec.size for codec in _LAYOUT)


def _divide(numerator: float, denominator: float) -> float:
    # Zero denominators give inf or nan as in IEEE-754 instead of raising ZeroDivisionError.
    if denominator == 0.0:
        with numpy.errstate(divide="ignore", invalid="ignore"):
            return float(numpy.float64(numerator) / numpy.float64(denominator))
    return numerator / denominator


def _as_float64_array(x: Any) -> numpy.ndarray:
    # Iterators such as generators have no length and must be consumed before numpy sees them.
    if isinstance(x, collections.abc.Iterable) and not isinstance(x, collections.abc.Sized):
        x = list(x)
    return numpy.asarray(x, dtype=numpy.float64)


def _sqrt(x: float) -> float:
    with numpy.errstate(invalid="ignore"):
        return float(numpy.sqrt(x))


class Accumulator(object):
    """Running mean and variance of a stream of optionally weighted values.

    Values are not retained. Each :meth:`add_weighted` call updates five sufficient statistics
    in constant time with Welford's recurrence, and the statistics are derived from them on
    demand. Accumulators fed with disjoint parts of a stream can be combined with :meth:`merge`,
    and the state can be stored or transferred as 40 bytes with :meth:`write` and :meth:`read`.

    Degenerate statistics are never raised as errors. Variances over a zero total weight, sample
    variances below two units of weight and square roots of variances that rounded to a tiny
    negative number are returned as ``inf`` or ``nan``. Check :meth:`count` or
    :meth:`sum_of_weights` before interpreting them.

    Example:

        Compute statistics per shard and combine them afterwards.

        .. testcode::

            import onlinevar

            shards = [onlinevar.Accumulator() for _ in range(2)]
            for i, value in enumerate([1.0, 1.0, 1.0, 0.0, 0.0, 0.0]):
                shards[i % 2].add(value)

            stats = shards[0]
            stats.merge(shards[1])
            assert stats.count() == 6
            assert abs(stats.mean() - 0.5) < 1e-12

    .. note::
        Instances are not thread-safe. Use one accumulator per thread or process and
        :meth:`merge` them, or lock around a shared instance.
    """

    def __init__(self) -> None:

        self._count = 0
        self._mean = 0.0
        self._sum_weight = 0.0
        self._sum_weight_sq = 0.0
        self._sdm = 0.0  # Weighted sum of squared distances from the mean.

    def add(self, value: float) -> None:
        """Add a value with unit weight."""

        self.add_weighted(value, 1.0)

    def add_weighted(self, value: float, weight: float) -> None:
        """Add a value with the given weight.

        Neither argument is validated. Non-finite values propagate to every statistic, and zero
        or negative weights are applied as they are.

        Args:
            value:
                The observed value.
            weight:
                The weight of the observation.
        """

        self._count += 1
        self._sum_weight += weight
        self._sum_weight_sq += weight * weight
        mean_before = self._mean
        self._mean = mean_before + _divide(weight, self._sum_weight) * (value - mean_before)
        self._sdm += weight * (value - mean_before) * (value - self._mean)

    def extend(
        self,
        values: Union[Iterable[float], numpy.ndarray],
        weights: Optional[Union[float, Iterable[float], numpy.ndarray]] = None,
    ) -> None:
        """Add a batch of values.

        This is equivalent to calling :meth:`add_weighted` for each value in order.

        Args:
            values:
                Array-like or iterable of values. Multi-dimensional arrays are flattened in C
                order.
            weights:
                Weights of the values. :obj:`None` gives every value a unit weight and a scalar
                is used for all values. Otherwise, it must hold as many elements as ``values``.

        Raises:
            :exc:`ValueError`:
                If ``weights`` does not match ``values`` in length.
        """

        values_array = _as_float64_array(values).ravel()
        if weights is None:
            weights_array = numpy.ones_like(values_array)
        else:
            weights_array = _as_float64_array(weights)
            if weights_array.ndim == 0:
                weights_array = numpy.full_like(values_array, weights_array)
            weights_array = weights_array.ravel()
            if weights_array.size != values_array.size:
                raise ValueError(
                    "The number of weights ({}) does not match the number of values "
                    "({}).".format(weights_array.size, values_array.size)
                )

        for value, weight in zip(values_array.tolist(), weights_array.tolist()):
            self.add_weighted(value, weight)

    def clear(self) -> None:
        """Reset the accumulator to its initial state."""

        self._count = 0
        self._mean = 0.0
        self._sum_weight = 0.0
        self._sum_weight_sq = 0.0
        self._sdm = 0.0

    def mean(self) -> float:
        """Return the weighted mean of the values, or ``0.0`` if no value has been added."""

        return self._mean

    def variance(self) -> float:
        """Return the population variance, i.e. the values are taken as the whole population."""

        return _divide(self._sdm, self._sum_weight)

    def sample_variance(self) -> float:
        """Return the unbiased variance of the values as a sample of a larger population."""

        return _divide(self._sdm, self._sum_weight - 1.0)

    def standard_deviation(self) -> float:
        """Return the square root of :meth:`variance`."""

        return _sqrt(self.variance())

    def sample_standard_deviation(self) -> float:
        """Return the square root of :meth:`sample_variance`."""

        return _sqrt(self.sample_variance())

    def count(self) -> int:
        """Return the number of values added, regardless of their weights."""

        return self._count

    def sum_of_weights(self) -> float:
        """Return the sum of the weights of the values added."""

        return self._sum_weight

    def sum_of_squared_weights(self) -> float:
        """Return the sum of the squared weights. It is tracked but not used by any variance."""

        return self._sum_weight_sq

    def clone(self) -> "Accumulator":
        """Return an independent copy of the accumulator."""

        accumulator = Accumulator()
        accumulator._set_state(
            self._count, self._mean, self._sum_weight, self._sum_weight_sq, self._sdm
        )
        return accumulator

    def merge(self, other: "Accumulator") -> None:
        """Merge the statistics of another accumulator into this one.

        The result is the same as if the values added to ``other`` had been added to this
        accumulator, up to floating point rounding. ``other`` is not modified.

        Args:
            other:
                The accumulator to merge. It may be this accumulator itself.

        Raises:
            :exc:`TypeError`:
                If ``other`` is not an :class:`~onlinevar.Accumulator`.
        """

        if not isinstance(other, Accumulator):
            raise TypeError(
                "Cannot merge an object of type {} into an Accumulator.".format(
                    type(other).__name__
                )
            )

        # Read `other` up front since it may be `self`.
        other_count = other._count
        other_mean = other._mean
        other_sum_weight = other._sum_weight
        other_sum_weight_sq = other._sum_weight_sq
        other_sdm = other._sdm

        self._count += other_count
        self._sum_weight += other_sum_weight
        self._sum_weight_sq += other_sum_weight_sq
        mean_before = self._mean
        self._mean = mean_before + _divide(other_sum_weight, self._sum_weight) * (
            other_mean - mean_before
        )
        self._sdm += (
            other_sdm + other_sum_weight * (other_mean - mean_before) * (other_mean - self._mean)
        )

    def write(self, sink: ByteSink) -> int:
        """Write the state of the accumulator in its 40 byte binary form.

        The fields are written big-endian in the following order: the count as an unsigned 64 bit
        integer, then the mean, the sum of weights, the sum of squared weights and the weighted
        sum of squared deviations as IEEE-754 doubles.

        Args:
            sink:
                An object with a ``write(data)`` method, e.g. a file opened in binary mode.

        Returns:
            The number of bytes written, which is always ``40``.

        Raises:
            :exc:`~onlinevar.exceptions.SerializationError`:
                If the sink fails. Its ``n_bytes`` attribute holds the number of bytes written
                before the failure.
        """

        n_bytes = 0
        for codec, value in zip(_LAYOUT, self._get_state()):
            n_bytes = _write_fully(sink, codec.pack(value), n_bytes)
        return n_bytes

    def read(self, source: ByteSource) -> int:
        """Replace the state of the accumulator with one read in the form of :meth:`write`.

        The accumulator is only updated once all 40 bytes have been read.

        Args:
            source:
                An object with a ``read(size)`` method, e.g. a file opened in binary mode.

        Returns:
            The number of bytes consumed, which is always ``40``.

        Raises:
            :exc:`~onlinevar.exceptions.SerializationError`:
                If the source fails or ends early. Its ``n_bytes`` attribute holds the number of
                bytes consumed before the failure.
        """

        state = []
        n_bytes = 0
        for codec in _LAYOUT:
            data = _read_fully(source, codec.size, n_bytes)
            state.append(codec.unpack_from(data)[0])
            n_bytes += codec.size

        self._set_state(*state)
        return n_bytes

    def to_bytes(self) -> bytes:
        """Return the binary form of the accumulator written by :meth:`write`."""

        buffer = io.BytesIO()
        self.write(buffer)
        return buffer.getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> "Accumulator":
        """Create an accumulator from the output of :meth:`to_bytes` or :meth:`write`.

        Raises:
            :exc:`ValueError`:
                If ``data`` is not exactly 40 bytes long.
        """

        if len(data) != SERIALIZED_SIZE:
            raise ValueError("Expected {} bytes but got {}.".format(SERIALIZED_SIZE, len(data)))

        accumulator = cls()
        accumulator.read(io.BytesIO(data))
        return accumulator

    def _get_state(self) -> Tuple[int, float, float, float, float]:

        return self._count, self._mean, self._sum_weight, self._sum_weight_sq, self._sdm

    def _set_state(
        self, count: int, mean: float, sum_weight: float, sum_weight_sq: float, sdm: float
    ) -> None:

        self._count = count
        self._mean = mean
        self._sum_weight = sum_weight
        self._sum_weight_sq = sum_weight_sq
        self._sdm = sdm

    def __iadd__(self, other: "Accumulator") -> "Accumulator":

        self.merge(other)
        return self

    def __copy__(self) -> "Accumulator":

        return self.clone()

    def __deepcopy__(self, memo: Dict[int, Any]) -> "Accumulator":

        return self.clone()

    def __repr__(self) -> str:

        return (
            "{}(count={}, mean={!r}, sum_weight={!r}, sum_weight_sq={!r}, "
            "weighted_sum_sq_dev={!r})".format(
                self.__class__.__name__,
                self._count,
                self._mean,
                self._sum_weight,
                self._sum_weight_sq,
                self._sdm,
            )
        )


def merge_all(accumulators: Iterable[Accumulator]) -> Accumulator:
    """Merge accumulators into a new one.

    This is the fan-in step of sharded ingestion, where each worker owns an accumulator and the
    results are combined once the workers are done.

    Example:

        .. testcode::

            import numpy

            import onlinevar

            values = numpy.arange(100, dtype=numpy.float64)

            shards = []
            for chunk in numpy.array_split(values, 4):
                shard = onlinevar.Accumulator()
                shard.extend(chunk)
                shards.append(shard)

            stats = onlinevar.merge_all(shards)
            assert stats.count() == 100

    Args:
        accumulators:
            Accumulators to merge. They are not modified. Empty ones are skipped.

    Returns:
        A new :class:`~onlinevar.Accumulator`. It is empty if ``accumulators`` is empty.
    """

    merged = Accumulator()
    n_received = 0
    n_merged = 0
    for accumulator in accumulators:
        n_received += 1
        # Merging two empty accumulators gives a nan mean.
        if accumulator.count() == 0:
            continue
        merged.merge(accumulator)
        n_merged += 1

    _logger.debug(
        "Merged {} of {} accumulator(s) holding {} value(s).".format(
            n_merged, n_received, merged.count()
        )
    )
    return merged
