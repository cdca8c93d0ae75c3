from docsync.application.interfaces.relational_sink import RelationalSink

__all__ = ["RelationalSink"]
