"""Event-driven image pipeline: upload fanout to metadata, converter and resizer workers."""
