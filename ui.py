from asciimatics.widgets import Frame, Layout, Divider, Button, CheckBox, DropdownList, Label

from brush import BrushKind, BrushSettings


class ColorPalette:
    """
    One button per palette colour.
    """
    def __init__(self, frame, palette, on_color_change):
        self.frame = frame
        self.on_color_change = on_color_change

        layout = Layout([1, 1])
        self.frame.add_layout(layout)
        for i, (name, color) in enumerate(palette):
            # Bind the colour now; a bare lambda would see the last loop value.
            button = Button(name, on_click=lambda c=color, n=name: self._select_color(c, n))
            layout.add_widget(button, i % 2)

    def _select_color(self, color, name):
        self.on_color_change(color, name)


class BrushSizeSelector:
    """
    Dropdown over the configured brush size presets.
    """

    def __init__(self, frame, presets, on_size_change, initial=None):
        self.frame = frame
        self.on_size_change = on_size_change

        layout = Layout([1])
        self.frame.add_layout(layout)

        sizes = [(f"{name} ({px}px)", px) for name, px in presets.items()]

        def _on_change():
            if self.on_size_change:
                self.on_size_change(self.dropdown.value)

        self.dropdown = DropdownList(sizes, label="Brush:", on_change=_on_change)
        if initial is not None and initial in presets.values():
            self.dropdown.value = initial
        layout.add_widget(self.dropdown)


class UIFrame(Frame):
    """
    Side panel: palette, brush options, history buttons and a status line.
    """
    def __init__(self, screen, settings: BrushSettings, palette, presets, actions):
        super(UIFrame, self).__init__(
            screen,
            screen.height,
            screen.width // 4,
            x=screen.width - screen.width // 4,
            y=0,
            has_border=True,
            name="UI"
        )
        self.settings = settings
        self._syncing = False
        # True while the mouse is over the panel rather than the canvas.
        self.has_focus: bool = False

        self.color_palette = ColorPalette(self, palette, self._set_color)
        layout = Layout([1])
        self.add_layout(layout)
        layout.add_widget(Divider())
        self.brush_selector = BrushSizeSelector(self, presets, self._set_size, initial=settings.size)

        toggles = Layout([1])
        self.add_layout(toggles)
        self.soft_box = CheckBox("Soft brush", on_change=self._sync_toggles)
        self.eraser_box = CheckBox("Eraser", on_change=self._sync_toggles)
        self.lines_box = CheckBox("Stay in lines", on_change=self._sync_toggles)
        self.refresh_toggles()
        for box in (self.soft_box, self.eraser_box, self.lines_box):
            toggles.add_widget(box)

        history = Layout([1, 1, 1])
        self.add_layout(history)
        history.add_widget(Button("Undo", on_click=actions["undo"]), 0)
        history.add_widget(Button("Redo", on_click=actions["redo"]), 1)
        history.add_widget(Button("Clear", on_click=actions["clear"]), 2)

        footer = Layout([1])
        self.add_layout(footer)
        footer.add_widget(Divider())
        self.status = Label("", height=3)
        footer.add_widget(self.status)
        self.fix()

    def _set_color(self, color, name):
        self.settings.color = color
        self.settings.eraser = False
        self.eraser_box.value = False
        self.set_status(f"Colour: {name}")

    def _set_size(self, size):
        self.settings.size = size

    def _sync_toggles(self):
        if self._syncing:
            return
        self.settings.style = BrushKind.SOFT if self.soft_box.value else BrushKind.SOLID
        self.settings.eraser = bool(self.eraser_box.value)
        self.settings.stay_in_lines = bool(self.lines_box.value)

    def refresh_toggles(self):
        """Pushes settings changed from the keyboard back into the widgets."""
        self._syncing = True
        try:
            self.soft_box.value = self.settings.style is BrushKind.SOFT
            self.eraser_box.value = self.settings.eraser
            self.lines_box.value = self.settings.stay_in_lines
        finally:
            self._syncing = False

    def set_status(self, text: str):
        self.status.text = text
