import sys
import os
import importlib.util
from pathlib import Path
from .hierarchy import HierarchySource, HierarchyNode, ChangeKind

try:
    from watchdog.observers import Observer
    from watchdog.events import FileSystemEventHandler
    WATCHDOG_AVAILABLE = True
except ImportError:
    WATCHDOG_AVAILABLE = False


class ScriptHierarchySource(HierarchySource):
    """
    A hierarchy defined by a Python script, reloaded whenever the file changes.

    The script must define `main()` returning either a Hierarchy or a list
    of top-level HierarchyNode objects.
    """
    def __init__(self, path, watch: bool = True, auto_reload: bool = True, verbose: bool = True):
        """
        Args:
            path (str): The script to load.
            watch (bool): Start watching the file immediately.
            auto_reload (bool): Reload from the watcher thread as soon as the file changes.
                                When False, call `poll()` to apply pending changes.
            verbose (bool): Print reload status.
        """
        super().__init__()
        self.script_path = os.path.abspath(str(path))
        self.auto_reload = auto_reload
        self.verbose = verbose
        self.reload_pending = False
        self._children = ()
        self._observer = None
        self._load()
        if watch:
            self.start()

    def children(self) -> tuple:
        return self._children

    def _load(self) -> bool:
        try:
            spec = importlib.util.spec_from_file_location("sdfcompose_user_script", self.script_path)
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
            if not (hasattr(module, 'main') and callable(module.main)):
                print(f"WARNING: No valid `main` function found in '{Path(self.script_path).name}'. Cannot reload.", file=sys.stderr)
                return False
            result = module.main()
        except Exception as e:
            print(f"ERROR: Failed to load script '{self.script_path}': {e}", file=sys.stderr)
            return False

        if isinstance(result, HierarchySource):
            nodes = tuple(result.children())
        elif isinstance(result, (list, tuple)) and all(isinstance(n, HierarchyNode) for n in result):
            nodes = tuple(result)
        else:
            print(f"ERROR: `main` in '{Path(self.script_path).name}' must return a Hierarchy or a list of HierarchyNode.", file=sys.stderr)
            return False

        self._children = nodes
        return True

    def reload(self) -> bool:
        """Re-runs the script; on failure the previous nodes are kept."""
        if self.verbose:
            print(f"INFO: Change detected in '{Path(self.script_path).name}'. Reloading...", file=sys.stderr)
        self.reload_pending = False
        if not self._load():
            return False
        self._notify(ChangeKind.RELOADED)
        return True

    def poll(self) -> bool:
        """Applies a pending reload, if any. Returns True when the nodes changed."""
        if self.reload_pending:
            return self.reload()
        return False

    def _on_modified(self):
        self.reload_pending = True
        if self.auto_reload:
            self.reload()

    def start(self):
        """Starts the watchdog observer on the script's directory."""
        if self._observer is not None:
            return
        if not WATCHDOG_AVAILABLE:
            print("INFO: Hot-reloading disabled. `watchdog` not installed. Run 'pip install watchdog'.", file=sys.stderr)
            return

        class ChangeHandler(FileSystemEventHandler):
            def __init__(self, source):
                self.source = source
            def on_modified(self, event):
                if os.path.abspath(os.fsdecode(event.src_path)) == self.source.script_path:
                    self.source._on_modified()

        self._observer = Observer()
        self._observer.schedule(ChangeHandler(self), str(Path(self.script_path).parent), recursive=False)
        self._observer.daemon = True
        self._observer.start()
        if self.verbose:
            print(f"INFO: Watching '{Path(self.script_path).name}' for changes...", file=sys.stderr)

    def stop(self):
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    @property
    def watching(self) -> bool:
        return self._observer is not None
