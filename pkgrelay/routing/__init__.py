"""pkgrelay notification routing: publishes getter results to every sink.

Sinks are pluggable targets: an in-memory topic buffer, local JSON files,
an HTTP topic webhook, or any custom sink implementing the
``NotificationSink`` protocol.  The ``SinkDispatcher`` fans each message
out to every registered sink.
"""
