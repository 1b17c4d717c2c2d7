"""A SQLite-backed message queue with topics, channels, publishers and consumers."""