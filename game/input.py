import pygame

class Input:
    """Digest of one frame's pygame events"""
    def __init__(self):
        self.quit = False
        self.escape = False
        self.enter = False
        self.mouse_clicked = False
        self.mouse_pos = (0, 0)
        self.dropped_files = []

    def update(self, events=None):
        self.quit = False
        self.escape = False
        self.enter = False
        self.mouse_clicked = False
        self.dropped_files.clear()

        if events is None:
            events = pygame.event.get()

        for event in events:
            if event.type == pygame.QUIT:
                self.quit = True
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self.escape = True
                elif event.key == pygame.K_RETURN:
                    self.enter = True
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self.mouse_clicked = True
            elif event.type == pygame.DROPFILE:
                self.dropped_files.append(event.file)

        self.mouse_pos = pygame.mouse.get_pos()
