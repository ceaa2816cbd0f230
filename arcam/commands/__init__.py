"""Subcommands of the arcam command line: start, shell, exec, exists, config, list, logs, kill, completion and init."""