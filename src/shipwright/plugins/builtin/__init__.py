"""Built-in plugins, loaded by file path through the plugin loader."""
