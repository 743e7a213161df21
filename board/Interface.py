from board.Core import Core, Move


class Interface:

    def __init__(self):
        self.core: Core = None

    def onStart(self):
        pass

    def onEvent(self, move: Move):
        """
        Invoked after a move has been applied to the layout.
        :param move:
        :return:
        """
        self.notifyRedraw()

    def notifyRedraw(self):
        pass

    def onWin(self):
        pass

    def onLose(self):
        pass
