from collections import Counter

from serial_relay.protocol.transaction import TransactionResult, TransactionStatus


class TransactionStats:
    """
    Counts transaction outcomes per port. Register an instance as a handler for transaction results.
    Not thread safe - attach it to a QueuedEventSource so it is only called from the publishing thread.
    """

    def __init__(self):
        self.counts = Counter()

    def __call__(self, result: TransactionResult):
        self.counts[(result.port, result.status)] += 1

    def count(self, port, status: TransactionStatus) -> int:
        return self.counts[(port, status)]

    @property
    def ports(self):
        return sorted({port for port, _ in self.counts})

    def summary(self):
        """
        Describes the counts for each port, one line per port.
        >>> stats = TransactionStats()
        >>> stats(TransactionResult("COM1", 5, TransactionStatus.TIMEOUT))
        >>> stats.summary()
        ['COM1: 1 transactions, complete=0 timeout=1 end_of_data=0 read_error=0 write_error=0']
        """
        lines = []
        for port in self.ports:
            counts = [(status.value, self.count(port, status)) for status in TransactionStatus]
            total = sum(n for _, n in counts)
            lines.append("%s: %d transactions, %s" % (port, total, " ".join("%s=%d" % c for c in counts)))
        return lines
