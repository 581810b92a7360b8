"""Domain Layer: value objects, interfaces and events. No I/O lives here."""
