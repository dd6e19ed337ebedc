# tinyunix

tinyunix is a small Unix-like teaching system written in plain Python.
It models the parts of a simple kernel and its user space as ordinary
objects. You can inspect them and test them without an emulator.

## Modules

- **`tinyunix.params`**: system limits such as `NPROC`, `NOFILE` and
  `MAXARG`. It holds the system call numbers (`Syscall`), the trap and
  IRQ numbers (`Trap`, `Irq`) and the file types (`FileType`). It also
  has the `Stat` and `RtcDate` records, the `KernelPanic` exception, and
  two encoders for 8-byte segment descriptors: `seg_null()` and
  `seg_asm(type_, base, lim)`.
- **`tinyunix.textutil`**: string and memory helpers that treat their
  input as NUL-terminated byte strings. They are `memcmp`, `memmove`,
  `strcmp`, `strncmp`, `strncpy`, `safestrcpy`, `strlen`, `strchr` and
  `atoi`. It also has `gets`, which reads one line from a binary stream.
- **`tinyunix.umalloc`**: `Heap`, a first-fit free-list allocator over
  a simulated address space. It has `sbrk`, `malloc` and `free`, and the
  properties `brk` and `free_blocks`.
- **`tinyunix.uthread`**: `ThreadTable`, which runs cooperative threads
  with `create`, `yield_`, `exit` and `join`, together with the
  `ThreadState` enum and `ThreadError`. Only one thread runs at a time,
  and control passes only when a thread yields, exits or joins. `join`
  raises again any exception that the thread's function raised.
- **`tinyunix.umutex`**: `Mutex`, a lock for those threads. It yields
  while the lock is held by another thread, and it can be used as a
  context manager.
- **`tinyunix.shell`**: the shell's tokenizer and parser. `tokenize`
  splits a command line into `Token`s. `parse_command` builds a tree of
  `ExecCmd`, `RedirCmd`, `PipeCmd`, `ListCmd` and `BackCmd` nodes, and
  raises `ShellSyntaxError` on bad input.
- **`tinyunix.wc`**: `count(data)` returns the lines, words and bytes of
  some data as a `Counts` record. `main` is the `tinyunix-wc` command.
- **`tinyunix.rm`**: `main` is the `tinyunix-rm` command.
- **`tinyunix.locks`**: `Cpu` tracks nested interrupt disabling with
  `push_cli` and `pop_cli`. It also has `SpinLock` and `SleepLock`, and
  `SleepLockBusy`, which is raised when a process tries to take a sleep
  lock it already holds.
- **`tinyunix.memory`**: `PhysicalMemory`, a pool of page frames, and
  two-level `PageTable`s over it. A page table has `walk`, `map_pages`,
  `init_user`, `alloc_user`, `dealloc_user`, `copy`, `free`,
  `clear_user`, `user_to_kernel`, `copy_out` and `read`. The module also
  provides `pg_round_up`, `pg_round_down`, the `PteFlag` bits and
  `OutOfMemory`.
- **`tinyunix.proc`**: `ProcessTable`, with `user_init`, `fork`,
  `exit`, `wait`, `kill`, `sleep`, `wakeup`, `yield_`, `schedule`,
  `grow`, `lookup` and `dump`. It also has `Proc`, `TrapFrame`,
  `ProcState` and `ProcessError`. Nothing blocks: a call that would wait
  puts the process to sleep and returns. `schedule` then picks the next
  runnable process round-robin.
- **`tinyunix.syscall`**: functions that fetch system-call arguments
  from user memory (`fetch_int`, `fetch_str`, `arg_int`, `arg_ptr`,
  `arg_str`), a tick `Clock`, and the `SyscallDispatcher`.
- **`tinyunix.trap`**: `TrapDispatcher`. It routes system calls, timer
  ticks, device interrupts and faults, and kills a process that faults
  in user mode.

The package has no dependencies beyond the standard library.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Parsing shell commands

```python
from tinyunix.shell import parse_command, ShellSyntaxError

tree = parse_command("cat README | grep unix > out; echo done &")
print(tree)

try:
    parse_command("echo (")
except ShellSyntaxError as err:
    print("syntax error:", err)
```

## Running processes

```python
from tinyunix.proc import ProcessTable

table = ProcessTable()
init = table.user_init(b"\x90")
child_pid = table.fork(init)
running = table.schedule()   # the first runnable process, now RUNNING
print(table.dump())
```

## Cooperative threads

```python
from tinyunix.uthread import ThreadTable
from tinyunix.umutex import Mutex

threads = ThreadTable()
mutex = Mutex(threads)
seen = []

def worker(n):
    with mutex:
        seen.append(n)
    threads.yield_()

tid = threads.create(worker, 1)
threads.join(tid)
print(seen)  # [1]
```

## Counting lines, words and bytes

```python
from tinyunix.wc import count

print(count(b"hello world\nsecond line\n"))
# Counts(lines=2, words=4, chars=24)
```

## Command-line tools

Two small tools are installed as commands.

`tinyunix-wc` counts the lines, words and bytes of each file it is given,
or of standard input when no file is given. It stops with status 1 at
the first file it cannot open:

```
tinyunix-wc notes.txt other.txt
```

`tinyunix-rm` removes files and empty directories. It stops at the first
path that cannot be removed. Without arguments it prints a usage line:

```
tinyunix-rm old.txt scratch.txt
```

## What it does not do

- There is no file system. Nothing in the package models inodes,
  directories, open files, pipes or a disk. `ProcessTable` accepts any
  object with `dup` and `close` methods as an open file.
- `SyscallDispatcher` only handles `fork`, `exit`, `wait`, `kill`,
  `getpid`, `sbrk`, `sleep` and `uptime`. Any other call number prints
  "unknown sys call" and returns -1 unless you install a handler with
  `register`.
- There is no `exec` and no program loader. The shell module parses
  command lines but does not run them, and there is no interactive shell
  command.
- Nothing switches machine contexts. Processes and interrupts are driven
  by calling the table and dispatchers directly.