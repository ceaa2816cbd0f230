# arcam

Sandboxed development containers at your fingertips.

`arcam` starts a podman container for the current directory and mounts that
directory read-write inside it under `~/ws/<directory name>`. It creates your
user inside the container and keeps everything else locked down. Network,
audio, Wayland, ssh-agent and the session bus stay off unless you turn them on.

## Requirements

- Linux
- `podman` on your `PATH`
- Python 3.11 or newer

## Installation

```sh
pip install .
```

This installs the `arcam` command.

## Usage

Start a container in the current directory from an image, a config file or
a named config:

```sh
arcam start docker.io/library/debian:latest
arcam start ./dev.toml
arcam start @rust
```

An argument that starts with `.`, `/` or `~/`, or that ends in `.toml`, is
read as a file. An argument that starts with `@` names a config in the config
directory. Anything else is used as an image. Only one container can run per
directory.

When the container has started, its name is printed. Use `--name` to choose
the name yourself. Otherwise a random adjective is joined to the suffix from
`$ARCAM_CONTAINER_SUFFIX`, which defaults to `arcam`. Add `-E`/`--enter` to
open a shell once initialization finishes.

Commands that take a container name use the container started in the current
directory when you leave the name out:

```sh
arcam shell                     # open the default shell (alias: enter)
arcam exec -- make test         # run a command as your user
arcam exec --shell -- 'ls | wc -l'
arcam exec --shell=/bin/bash --login -- 'echo $PATH'
arcam exists                    # exit code 0 if the container exists, 1 otherwise
arcam list                      # list containers (alias: ls)
arcam list --here --raw
arcam logs --follow             # show the journal entries for the container
arcam kill --yes                # stop the container (alias: stop)
arcam kill --timeout 30 mycontainer
```

`exec --shell` without a value runs the command with `/bin/sh -c`.
`--login` requires `--shell`. Unless you pass `--yes`, `kill` asks before it
stops the container. It waits `--timeout` seconds, 10 by default, before the
container is stopped by force.

### Permissions

Give the container more access when you start it:

```sh
arcam start --network --audio --wayland --ssh-agent --session-bus @dev
arcam start --network=false @dev
arcam start -p 8080 -p 3000:3001 --cap '!NET_RAW' --cap SYS_PTRACE debian
```

- `-p PORT[:HOST_PORT]` publishes both TCP and UDP.
- `--cap NAME` adds a capability and `--cap '!NAME'` drops it. For each name,
  the last entry wins.
- `-m DIR` mounts an extra directory under `~/ws/`.
- `-e VAR=VALUE` sets an environment variable.
- `--skel DIR` mounts a directory as `/etc/skel`. Its contents are copied into
  your home in the container.
- `--on-init-pre` and `--on-init-post` run shell commands before and after the
  other init scripts.

Extra arguments after `--` are passed to podman unchanged:

```sh
arcam start debian -- --memory=2g
```

### Configs

Configs are TOML files. A config must contain `version` and `image`, and
unknown keys are rejected. Named configs live in `configs/` inside the app
directory and are selected with `@name`. The app directory is `$ARCAM_DIR`,
or `$XDG_CONFIG_HOME/arcam`, or `~/.config/arcam`.

```sh
arcam config --example          # print an example config
arcam config --options          # describe every option
arcam config @dev               # check and print a config
arcam config some/image:tag     # read /config.toml from inside an image
```

A minimal config:

```toml
version = 1
image = "docker.io/library/debian:latest"
network = true
ports = [[8080, 8080]]
env = [["EDITOR", "vim"]]
persist = [["cargo-cache", "/home/me/.cargo"]]
```

Values in `engine_args`, `env` and `skel` are expanded. The forms `$NAME`,
`${NAME}` and `${NAME:-default}` are recognized:

- `USER`, `HOME` and `PWD`/`CWD` give your user, your home and the current
  directory.
- `CONTAINER`/`CONTAINER_NAME` give the container name.
- `RAND`/`RANDOM` give a random number.
- Any other name is looked up in the host environment.

Options given on the command line take precedence over those in the config.

`host_pre_init` is a shell script that runs on the host in place of `start`.
It receives the original arguments, and `$ARCAM_EXE_PATH` is set to the
program, so the script must run `start` again itself.

### Environment variables

- `ARCAM_IMAGE`: image or config to start when none is given
- `ARCAM_CONTAINER`: default container name
- `ARCAM_CONTAINER_SUFFIX`: suffix for generated container names
- `ARCAM_ENTER_ON_START`: open a shell right after `start`
- `ARCAM_WAYLAND_DISPLAY`: Wayland socket to pass through, taking precedence over `WAYLAND_DISPLAY`
- `ARCAM_DIR`: app directory
- `LOG_LEVEL`: log verbosity (`Error`, `Warn`, `Info`, `Debug`, `Trace`), the same as `-l`/`--log-level`

Add `--dry-run` to a command to log the podman command instead of running it.

### Shell completion

```sh
arcam completion --shell bash > arcam.bash
```

Scripts can be generated for `bash`, `zsh`, `fish`, `elvish` and
`powershell`. Without `--shell`, the shell is detected from `$SHELL`, which
works for bash, zsh and fish. The command refuses to write to a terminal.
The bash, zsh and fish scripts complete configs and container names by
calling `arcam completion config` and `arcam completion container`.

## How a container is initialized

The container's entrypoint is the running `arcam` program, mounted read-only
at `/arcam/exe` and started as `arcam init`. Inside the container, `init` does
the following:

- creates or updates your user
- copies `/etc/skel` into your home
- enables passwordless `sudo`, or passwordless `su` when sudo is missing
- runs the scripts in `/init.d` in name order
- signals `start` that it is done

The image must therefore be able to run that program. `init` refuses to run
outside a container.

## Limitations

- Only podman is supported.
- `arcam.features` can parse feature locations (`./dir`, `/dir`,
  `git+URL#TAG`), but no command fetches or installs features.
- The config `version` is required, but every version is read the same way.