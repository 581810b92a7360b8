"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (the remote activity API,
disk storage, configuration files, the console) by implementing the
interfaces defined in the domain layer.
"""
