"""Tkinter desktop front end: the game screen and a level generator tool."""

from __future__ import annotations

import logging
import queue
import threading
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk

from generator import WordGenerator, level_from_results
from models import BonusType, GenerateOptions, LevelCompletion, SessionSnapshot, SessionStatus, WordResult
from session import SessionEngine
from storage import ProgressStore
from utils import (
    DEFAULT_DATA_DIR,
    DEFAULT_TIME_LIMIT,
    SUPPORTED_LANGUAGES,
    format_time,
    level_filename,
    load_config,
    load_level_file,
    load_level_mapping,
    save_config,
    save_level_file,
    select_level_file,
    setup_logging,
    star_rating,
)

TICK_MS = 1000
POLL_MS = 100
AUTOSAVE_EVERY_TICKS = 5
MESSAGE_CLEAR_MS = 2000


class AnagramHuntApp(tk.Tk):
    """Desktop UI for playing levels and authoring new ones."""

    def __init__(self) -> None:
        super().__init__()
        setup_logging()
        self.logger = logging.getLogger(__name__)

        self.title("Anagram Hunt")
        self.geometry("900x720")
        self.minsize(760, 600)

        self.config_data = load_config()
        self.language: str = self.config_data.get("language", "en")
        self.data_dir = Path(self.config_data.get("data_dir", str(DEFAULT_DATA_DIR)))
        time_limit = int(self.config_data.get("time_limit", DEFAULT_TIME_LIMIT))

        self.store = ProgressStore()
        self.engine = SessionEngine(time_limit=time_limit, on_complete=self._on_level_complete)
        self.generator = WordGenerator()
        self.generated: list[WordResult] = []
        self.generated_seed = ""
        self.worker_queue: queue.Queue[tuple] = queue.Queue()
        self.ticks_since_save = 0
        self.is_generating = False
        self._message_job: str | None = None
        self.key_buttons: dict[str, ttk.Button] = {}

        self._build_vars()
        self._build_ui()
        self.bind("<Key>", self._on_key)
        self.protocol("WM_DELETE_WINDOW", self._on_close)
        self.after(POLL_MS, self._poll_worker_queue)
        self.after(TICK_MS, self._on_tick)
        self._start_or_resume()

    def _build_vars(self) -> None:
        self.level_var = tk.StringVar(value="Level -")
        self.score_var = tk.StringVar(value="Score: 0")
        self.found_var = tk.StringVar(value="0 / 0 Found")
        self.timer_var = tk.StringVar(value=format_time(self.engine.time_limit))
        self.seed_var = tk.StringVar(value="")
        self.input_var = tk.StringVar(value="")
        self.message_var = tk.StringVar(value="")
        self.outcome_var = tk.StringVar(value="")
        self.language_var = tk.StringVar(value=self.language)
        self.gen_seed_var = tk.StringVar(value="")
        self.gen_language_var = tk.StringVar(value=self.language)
        self.gen_wordlist_var = tk.StringVar(value=self.config_data.get("last_wordlist_path", ""))
        self.gen_status_var = tk.StringVar(value="Enter a seed word to find all of its sub-words.")

    def _build_ui(self) -> None:
        self.columnconfigure(0, weight=1)
        self.rowconfigure(0, weight=1)
        notebook = ttk.Notebook(self)
        notebook.grid(row=0, column=0, sticky="nsew")

        play = ttk.Frame(notebook, padding=8)
        tools = ttk.Frame(notebook, padding=8)
        notebook.add(play, text="Play")
        notebook.add(tools, text="Word List Generator")
        self._build_play_tab(play)
        self._build_tools_tab(tools)

    def _build_play_tab(self, play: ttk.Frame) -> None:
        play.columnconfigure(0, weight=1)
        play.rowconfigure(6, weight=1)

        header = ttk.Frame(play)
        header.grid(row=0, column=0, sticky="ew")
        for col in range(4):
            header.columnconfigure(col, weight=1)
        ttk.Label(header, textvariable=self.level_var).grid(row=0, column=0, sticky="w")
        ttk.Label(header, textvariable=self.score_var).grid(row=0, column=1)
        ttk.Label(header, textvariable=self.found_var).grid(row=0, column=2)
        ttk.Label(header, textvariable=self.timer_var, font=("Segoe UI", 14, "bold")).grid(row=0, column=3, sticky="e")

        ttk.Label(play, textvariable=self.seed_var, font=("Segoe UI", 24, "bold")).grid(row=1, column=0, pady=(12, 4))
        ttk.Label(play, textvariable=self.input_var, font=("Segoe UI", 22)).grid(row=2, column=0, pady=4)
        self.message_label = ttk.Label(play, textvariable=self.message_var, font=("Segoe UI", 12))
        self.message_label.grid(row=3, column=0, pady=4)

        self.keyboard = ttk.Frame(play)
        self.keyboard.grid(row=4, column=0, pady=8)

        controls = ttk.Frame(play)
        controls.grid(row=5, column=0, pady=(0, 8))
        ttk.Button(controls, text="Delete", command=self._delete_clicked).grid(row=0, column=0, padx=4)
        ttk.Button(controls, text="Enter", command=self._submit_clicked).grid(row=0, column=1, padx=4)
        ttk.Button(controls, text="End Level", command=self._end_level_clicked).grid(row=0, column=2, padx=4)
        self.next_button = ttk.Button(controls, text="Next Level", command=self._next_level_clicked, state=tk.DISABLED)
        self.next_button.grid(row=0, column=3, padx=4)
        ttk.Combobox(
            controls,
            textvariable=self.language_var,
            values=sorted(SUPPORTED_LANGUAGES),
            width=4,
            state="readonly",
        ).grid(row=0, column=4, padx=(16, 4))
        ttk.Button(controls, text="New Game", command=self._new_game_clicked).grid(row=0, column=5, padx=4)

        found_frame = ttk.LabelFrame(play, text="Found Words", padding=8)
        found_frame.grid(row=6, column=0, sticky="nsew")
        found_frame.columnconfigure(0, weight=1)
        found_frame.rowconfigure(0, weight=1)
        self.found_tree = ttk.Treeview(found_frame, columns=("word", "bonus", "score"), show="headings", height=10)
        self.found_tree.heading("word", text="Word")
        self.found_tree.heading("bonus", text="Bonus")
        self.found_tree.heading("score", text="Score")
        self.found_tree.column("word", width=260, anchor=tk.W)
        self.found_tree.column("bonus", width=200, anchor=tk.CENTER)
        self.found_tree.column("score", width=100, anchor=tk.E)
        self.found_tree.grid(row=0, column=0, sticky="nsew")
        ttk.Label(play, textvariable=self.outcome_var, font=("Segoe UI", 14, "bold")).grid(row=7, column=0, pady=(8, 0))

    def _build_tools_tab(self, tools: ttk.Frame) -> None:
        tools.columnconfigure(1, weight=1)
        tools.rowconfigure(3, weight=1)

        ttk.Label(tools, text="Seed word:").grid(row=0, column=0, sticky="w", padx=(0, 8))
        ttk.Entry(tools, textvariable=self.gen_seed_var).grid(row=0, column=1, sticky="ew", padx=(0, 8))
        ttk.Combobox(
            tools,
            textvariable=self.gen_language_var,
            values=sorted(SUPPORTED_LANGUAGES),
            width=4,
            state="readonly",
        ).grid(row=0, column=2, padx=(0, 8))
        self.find_button = ttk.Button(tools, text="Find Words", command=self._find_words_clicked)
        self.find_button.grid(row=0, column=3)

        ttk.Label(tools, text="Wordlist (.txt, optional):").grid(row=1, column=0, sticky="w", padx=(0, 8), pady=(6, 0))
        ttk.Entry(tools, textvariable=self.gen_wordlist_var).grid(row=1, column=1, sticky="ew", padx=(0, 8), pady=(6, 0))
        ttk.Button(tools, text="Browse", command=self._browse_wordlist).grid(row=1, column=2, pady=(6, 0))

        ttk.Label(tools, textvariable=self.gen_status_var).grid(row=2, column=0, columnspan=4, sticky="w", pady=6)

        self.gen_tree = ttk.Treeview(tools, columns=("word", "length", "uncommonness", "score"), show="headings")
        for column, width in (("word", 240), ("length", 80), ("uncommonness", 120), ("score", 100)):
            self.gen_tree.heading(column, text=column.title())
            self.gen_tree.column(column, width=width, anchor=tk.W)
        gen_scroll = ttk.Scrollbar(tools, orient=tk.VERTICAL, command=self.gen_tree.yview)
        self.gen_tree.configure(yscrollcommand=gen_scroll.set)
        self.gen_tree.grid(row=3, column=0, columnspan=4, sticky="nsew")
        gen_scroll.grid(row=3, column=4, sticky="ns")

        ttk.Button(tools, text="Save Level File", command=self._save_level_clicked).grid(row=4, column=0, sticky="w", pady=(8, 0))

    # -- level loading -------------------------------------------------------

    def _start_or_resume(self) -> None:
        snapshot = self.store.load_snapshot()
        if snapshot is not None and messagebox.askyesno("Game Paused", "You have a saved game in progress. Resume it?"):
            self.language = snapshot.language
            self.language_var.set(snapshot.language)
            self._start_level(snapshot.level, snapshot)
            return
        self.store.clear_snapshot()
        progress = self.store.load_progress()
        level = progress.current_level if progress and progress.language == self.language else 1
        self._start_level(level)

    def _start_level(self, level: int, snapshot: SessionSnapshot | None = None) -> None:
        token = self.engine.begin_load(level, self.language)
        self.outcome_var.set("")
        self.next_button.configure(state=tk.DISABLED)
        self.seed_var.set(f"Loading Level {level}...")
        threading.Thread(
            target=self._load_level_worker,
            args=(token, level, self.language, snapshot),
            daemon=True,
        ).start()

    def _load_level_worker(self, token: int, level: int, language: str, snapshot: SessionSnapshot | None) -> None:
        try:
            if snapshot is not None and snapshot.selected_seed_word_file:
                filename = snapshot.selected_seed_word_file
            else:
                mapping = load_level_mapping(self.data_dir, language)
                filename = select_level_file(mapping, level)
            if filename is None:
                self.worker_queue.put(("all_levels_done", token, None))
                return
            level_file = load_level_file(self.data_dir, language, filename)
            self.worker_queue.put(("level_loaded", token, (level_file, filename, snapshot)))
        except Exception as exc:
            self.logger.exception("Failed loading level %s", level)
            self.worker_queue.put(("error", token, exc))

    def _poll_worker_queue(self) -> None:
        try:
            while True:
                kind, token, payload = self.worker_queue.get_nowait()
                if kind == "level_loaded":
                    self._handle_level_loaded(token, *payload)
                elif kind == "error":
                    self._handle_load_error(token, payload)
                elif kind == "all_levels_done":
                    self._handle_all_levels_done(token)
                elif kind == "generated":
                    self._handle_generated(*payload)
                elif kind == "generate_error":
                    self._handle_generate_error(payload)
        except queue.Empty:
            pass
        finally:
            self.after(POLL_MS, self._poll_worker_queue)

    def _handle_level_loaded(self, token: int, level_file, filename: str, snapshot: SessionSnapshot | None) -> None:
        replayed = self.store.is_level_completed(self.engine.level, self.engine.language)
        if not self.engine.apply_level(token, level_file, selected_file=filename, replayed=replayed):
            return
        if snapshot is not None:
            self.engine.suspend()
            try:
                self.engine.restore(snapshot)
            except ValueError:
                self.logger.exception("Saved game does not match level %s; starting fresh", snapshot.level)
                self.store.clear_snapshot()
            finally:
                self.engine.resume()
        self._rebuild_keyboard()
        self._render()

    def _handle_load_error(self, token: int, exc: Exception) -> None:
        if self.engine.fail_load(token, exc):
            self.seed_var.set("Could not load level")
            self._render()
            messagebox.showerror("Loading error", f"Failed to load level {self.engine.level}: {exc}")

    def _handle_all_levels_done(self, token: int) -> None:
        if self.engine.is_current_load(token):
            self.seed_var.set("")
            self.outcome_var.set("You've completed all levels!")

    # -- game actions --------------------------------------------------------

    def _on_key(self, event: tk.Event) -> None:
        if isinstance(event.widget, (tk.Entry, ttk.Entry)):
            return
        if event.keysym == "BackSpace":
            self._delete_clicked()
        elif event.keysym == "Return":
            self._submit_clicked()
        elif event.char and event.char.isalpha():
            self._press(event.char)

    def _press(self, letter: str) -> None:
        if self.engine.press_letter(letter):
            self._render()

    def _delete_clicked(self) -> None:
        self.engine.delete()
        self._render()

    def _submit_clicked(self) -> None:
        result = self.engine.submit()
        if result.found is not None:
            self._insert_found_row(result.found)
        self._render()
        if self._message_job is not None:
            self.after_cancel(self._message_job)
        self._message_job = self.after(MESSAGE_CLEAR_MS, self._clear_message)

    def _clear_message(self) -> None:
        self._message_job = None
        self.engine.message = ""
        self._render()

    def _end_level_clicked(self) -> None:
        self.engine.complete()
        self._render()

    def _next_level_clicked(self) -> None:
        next_level = self.engine.level + 1
        self.store.set_current_level(next_level, self.language)
        self._start_level(next_level)

    def _new_game_clicked(self) -> None:
        if not messagebox.askyesno("New Game", "Clear all progress and start again from level 1?"):
            return
        self.language = self.language_var.get()
        self.config_data["language"] = self.language
        save_config(self.config_data)
        self.store.clear_progress()
        self._start_level(1)

    def _on_tick(self) -> None:
        try:
            running = self.engine.tick()
            if running:
                self.ticks_since_save += 1
                if self.ticks_since_save >= AUTOSAVE_EVERY_TICKS:
                    self.ticks_since_save = 0
                    self.store.save_snapshot(self.engine.snapshot())
            self._render()
        finally:
            self.after(TICK_MS, self._on_tick)

    def _on_level_complete(self, completion: LevelCompletion) -> None:
        self.store.update_level_progress(completion)
        self.store.clear_snapshot()
        title = "Time's Up!" if self.engine.status is SessionStatus.TIME_EXPIRED else "Level Complete!"
        if self.engine.is_replayed_level:
            title = f"{title} (replay)"
        stars = star_rating(completion.score)
        self.outcome_var.set(
            f"{title}  Final score: {completion.score}  "
            f"({completion.words_found}/{completion.total_words} words, {stars} of 3 stars)"
        )
        self.next_button.configure(state=tk.NORMAL)

    def _on_close(self) -> None:
        if self.engine.status is SessionStatus.ACTIVE:
            self.store.save_snapshot(self.engine.snapshot())
        self.destroy()

    # -- rendering -----------------------------------------------------------

    def _rebuild_keyboard(self) -> None:
        for child in self.keyboard.winfo_children():
            child.destroy()
        self.key_buttons = {}
        for col, letter in enumerate(sorted(self.engine.seed_letters)):
            button = ttk.Button(self.keyboard, width=4, command=lambda l=letter: self._press(l))
            button.grid(row=0, column=col, padx=2)
            self.key_buttons[letter] = button
        self.found_tree.delete(*self.found_tree.get_children())
        for found in self.engine.found_words:
            self._insert_found_row(found)

    def _insert_found_row(self, found) -> None:
        bonus = ""
        if found.bonus.type is not BonusType.NONE:
            bonus = f"{found.bonus.type.value} x{found.bonus.count} +{found.bonus.amount}"
        self.found_tree.insert("", 0, values=(self.engine.display_form(found.word), bonus, f"+{found.score}"))

    def _render(self) -> None:
        engine = self.engine
        self.level_var.set(f"Level {engine.level}")
        self.score_var.set(f"Score: {engine.score}")
        self.found_var.set(f"{len(engine.found_words)} / {engine.total_words} Found")
        self.timer_var.set(format_time(engine.time_remaining))
        if engine.status is not SessionStatus.LOADING:
            self.seed_var.set(engine.seed_word.upper())
        self.input_var.set(engine.current_input.upper())
        self.message_var.set(engine.message)
        self.message_label.configure(foreground="#c62828" if engine.is_invalid else "#2e7d32")
        remaining = engine.remaining_letter_counts()
        for letter, button in self.key_buttons.items():
            count = remaining.get(letter, 0)
            button.configure(text=f"{letter.upper()} {count}", state=tk.NORMAL if count > 0 else tk.DISABLED)

    # -- generator tool ------------------------------------------------------

    def _browse_wordlist(self) -> None:
        path = filedialog.askopenfilename(
            title="Select wordlist file",
            filetypes=[("Text files", "*.txt"), ("All files", "*.*")],
        )
        if path:
            self.gen_wordlist_var.set(path)

    def _find_words_clicked(self) -> None:
        if self.is_generating:
            return
        seed = self.gen_seed_var.get().strip()
        if len(seed) < 3 or not seed.isalpha():
            messagebox.showerror("Invalid seed", "Seed words need 3 or more letters and nothing else.")
            return
        self.is_generating = True
        self.find_button.configure(state=tk.DISABLED)
        self.gen_status_var.set("Finding words in background...")
        threading.Thread(
            target=self._generate_worker,
            args=(seed, self.gen_language_var.get(), self.gen_wordlist_var.get().strip() or None),
            daemon=True,
        ).start()

    def _generate_worker(self, seed: str, language: str, wordlist_path: str | None) -> None:
        try:
            source = wordlist_path or f"wordfreq:{language}"
            if self.generator.source != source or self.generator.language != language:
                self.generator.load_dictionary(language, wordlist_path=wordlist_path, options=GenerateOptions())
            results = self.generator.generate(seed)
            self.worker_queue.put(("generated", None, (seed, results)))
        except Exception as exc:
            self.logger.exception("Word generation failed")
            self.worker_queue.put(("generate_error", None, f"Failed to find words: {exc}"))

    def _handle_generated(self, seed: str, results: list[WordResult]) -> None:
        self.is_generating = False
        self.find_button.configure(state=tk.NORMAL)
        self.generated = results
        self.generated_seed = seed
        self.gen_tree.delete(*self.gen_tree.get_children())
        for result in results:
            self.gen_tree.insert(
                "",
                tk.END,
                values=(result.word, len(result.word), result.estimated_uncommonness, result.combined_score),
            )
        self.gen_status_var.set(f"Found {len(results)} words for {seed.upper()}.")
        wordlist = self.gen_wordlist_var.get().strip()
        if wordlist:
            self.config_data["last_wordlist_path"] = wordlist
            save_config(self.config_data)

    def _handle_generate_error(self, message: str) -> None:
        self.is_generating = False
        self.find_button.configure(state=tk.NORMAL)
        self.gen_status_var.set("Word generation failed.")
        messagebox.showerror("Generation error", message)

    def _save_level_clicked(self) -> None:
        if not self.generated_seed:
            messagebox.showinfo("No results", "Find words for a seed before saving.")
            return
        path_str = filedialog.asksaveasfilename(
            title="Save level file",
            initialfile=level_filename(self.generated_seed),
            defaultextension=".json",
            filetypes=[("JSON files", "*.json"), ("All files", "*.*")],
        )
        if not path_str:
            return
        try:
            save_level_file(Path(path_str), level_from_results(self.generated_seed, self.generated))
            self.gen_status_var.set(f"Saved: {Path(path_str).name}")
        except Exception as exc:
            self.logger.exception("Saving level failed")
            messagebox.showerror("Save error", f"Could not save level: {exc}")


def main() -> None:
    app = AnagramHuntApp()
    app.mainloop()


if __name__ == "__main__":
    main()
