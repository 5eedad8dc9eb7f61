"""Live progress display fed by worker threads.

One coordinator thread owns the rich Progress display. Each worker
registers a ProgressHandle before doing any other work; the handle is
sent over the handle channel, and the coordinator consumes exactly one
handle per dispatched repository before it starts waiting for them to
finish. Handles only post events to a queue, they never touch the
display themselves.
"""

# Standard Library
import queue
import threading

# PIP3 modules
import rich.console
import rich.progress

STOP = None


#============================================
class ProgressHandle:
	"""
	Worker-side progress handle for one repository.
	"""

	def __init__(self, handle_id: int, name: str, total_steps: int, events: queue.Queue):
		self.handle_id = handle_id
		self.name = name
		self.total_steps = total_steps
		self._events = events
		self.finished = False

	#============================================
	def advance(self, steps: int = 1) -> None:
		self._events.put((self.handle_id, "advance", steps))

	#============================================
	def set_status(self, text: str) -> None:
		self._events.put((self.handle_id, "status", text))

	#============================================
	def finish(self, failed: bool = False) -> None:
		"""
		Mark the handle done; later calls are ignored.
		"""
		if self.finished:
			return
		self.finished = True
		self._events.put((self.handle_id, "finish", failed))


#============================================
class ProgressCoordinator:
	"""
	Renders every registered handle until all of them are finished.
	"""

	def __init__(
		self,
		expected: int,
		console: rich.console.Console | None = None,
		enabled: bool = True,
	):
		self.expected = expected
		self.handle_channel: queue.Queue = queue.Queue()
		self.events: queue.Queue = queue.Queue()
		self.registered = 0
		self.completed: dict[int, bool] = {}
		self._next_id = 0
		self._id_lock = threading.Lock()
		self.progress = rich.progress.Progress(
			rich.progress.SpinnerColumn(),
			rich.progress.TextColumn("[bold]{task.description}"),
			rich.progress.BarColumn(),
			rich.progress.MofNCompleteColumn(),
			rich.progress.TextColumn("{task.fields[status]}"),
			console=console,
			disable=not enabled,
		)
		self._thread = threading.Thread(
			target=self._run,
			name="resume-progress",
			daemon=True,
		)

	#============================================
	def start(self) -> None:
		self._thread.start()

	#============================================
	def register(self, name: str, total_steps: int) -> ProgressHandle:
		"""
		Create a handle and send it to the coordinator.
		"""
		with self._id_lock:
			handle_id = self._next_id
			self._next_id += 1
		handle = ProgressHandle(handle_id, name, total_steps, self.events)
		self.handle_channel.put(handle)
		return handle

	#============================================
	def abort(self) -> None:
		"""
		Stop waiting for handles or events that will never arrive.
		"""
		self.handle_channel.put(STOP)
		self.events.put(STOP)

	#============================================
	def join(self, timeout: float | None = None) -> None:
		if self._thread.is_alive():
			self._thread.join(timeout)

	#============================================
	def _run(self) -> None:
		with self.progress:
			task_ids = {}
			while len(task_ids) < self.expected:
				handle = self.handle_channel.get()
				if handle is STOP:
					return
				task_ids[handle.handle_id] = self.progress.add_task(
					handle.name,
					total=handle.total_steps,
					status="starting",
				)
				self.registered += 1
			pending = set(task_ids)
			while pending:
				event = self.events.get()
				if event is STOP:
					return
				handle_id, kind, value = event
				task_id = task_ids[handle_id]
				if kind == "advance":
					self.progress.advance(task_id, value)
				elif kind == "status":
					self.progress.update(task_id, status=value)
				elif kind == "finish":
					self.completed[handle_id] = not value
					status = "[red]failed" if value else "[green]done"
					self.progress.update(task_id, status=status)
					pending.discard(handle_id)
