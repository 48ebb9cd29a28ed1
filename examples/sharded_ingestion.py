import numpy

import onlinevar


def ingest(shard: numpy.ndarray) -> bytes:
    # Runs on a worker. Only the 40 byte state leaves it.
    stats = onlinevar.Accumulator()
    for value in shard.tolist():
        stats.add(value)
    return stats.to_bytes()


if __name__ == "__main__":
    onlinevar.logging.set_verbosity(onlinevar.logging.DEBUG)

    rng = numpy.random.RandomState(seed=0)
    stream = rng.normal(loc=30.0, scale=10.0, size=100000)

    payloads = [ingest(shard) for shard in numpy.array_split(stream, 8)]
    stats = onlinevar.merge_all(onlinevar.Accumulator.from_bytes(p) for p in payloads)

    print("Count: ", stats.count())
    print("Mean")
    print("  Accumulated: {} Actual: {}".format(stats.mean(), numpy.mean(stream)))
    print("Sample standard deviation")
    print(
        "  Accumulated: {} Actual: {}".format(
            stats.sample_standard_deviation(), numpy.std(stream, ddof=1)
        )
    )
