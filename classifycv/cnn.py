from typing import Optional

import numpy as np
import torch
import torch.nn as nn
from torch.utils.data import DataLoader, TensorDataset


DEVICE = "cuda" if torch.cuda.is_available() else "cpu"


class SmallCNN(nn.Module):
    """Two convolution blocks followed by global average pooling."""

    def __init__(self, in_channels: int, n_classes: int, filters: int = 16):
        super().__init__()
        self.features = nn.Sequential(
            nn.Conv2d(in_channels, filters, kernel_size=3, padding=1),
            nn.BatchNorm2d(filters),
            nn.ReLU(),
            nn.Conv2d(filters, 2 * filters, kernel_size=3, padding=1),
            nn.BatchNorm2d(2 * filters),
            nn.ReLU(),
            nn.AdaptiveAvgPool2d(1),
        )
        self.classifier = nn.Linear(2 * filters, n_classes)

    def forward(self, x):
        return self.classifier(torch.flatten(self.features(x), 1))


class CNNClassifier:
    def __init__(self, filters: int = 16, epochs: int = 20, batch_size: int = 32,
                 learning_rate: float = 1e-3, random_state: Optional[int] = None):
        """
        Image classifier with a fit/predict_proba interface.

        Images are (n, H, W) or channels-last (n, H, W, C). Labels must be
        encoded as 0..n_classes-1.
        """
        self.filters = filters
        self.epochs = epochs
        self.batch_size = batch_size
        self.learning_rate = learning_rate
        self.random_state = random_state

    @staticmethod
    def _to_tensor(X: np.ndarray) -> torch.Tensor:
        X = np.asarray(X, dtype=np.float32)
        if X.ndim == 3:
            X = X[:, np.newaxis, :, :]
        elif X.ndim == 4:
            X = np.transpose(X, (0, 3, 1, 2))
        else:
            raise ValueError(f"CNN expects images shaped (n, H, W) or (n, H, W, C), got {X.shape}")
        return torch.from_numpy(np.ascontiguousarray(X))

    def fit(self, X, y) -> 'CNNClassifier':
        if self.random_state is not None:
            torch.manual_seed(self.random_state)

        X_t = self._to_tensor(X)
        y_t = torch.as_tensor(np.asarray(y), dtype=torch.long)
        self.n_classes_ = int(y_t.max().item()) + 1

        # per-channel standardisation from the training images
        self.mean_ = X_t.mean(dim=(0, 2, 3), keepdim=True)
        self.std_ = X_t.std(dim=(0, 2, 3), keepdim=True).clamp_min(1e-8)
        X_t = (X_t - self.mean_) / self.std_

        self.model_ = SmallCNN(X_t.shape[1], self.n_classes_, self.filters).to(DEVICE)
        optimizer = torch.optim.Adam(self.model_.parameters(), lr=self.learning_rate)
        criterion = nn.CrossEntropyLoss()

        generator = torch.Generator()
        if self.random_state is not None:
            generator.manual_seed(self.random_state)
        loader = DataLoader(TensorDataset(X_t, y_t), batch_size=self.batch_size,
                            shuffle=True, generator=generator)

        self.model_.train()
        for _ in range(self.epochs):
            for xb, yb in loader:
                # BatchNorm cannot train on a single sample
                if len(xb) < 2:
                    continue
                xb, yb = xb.to(DEVICE), yb.to(DEVICE)
                optimizer.zero_grad()
                loss = criterion(self.model_(xb), yb)
                loss.backward()
                optimizer.step()
        return self

    def predict_proba(self, X) -> np.ndarray:
        X_t = (self._to_tensor(X) - self.mean_) / self.std_
        self.model_.eval()
        with torch.no_grad():
            logits = self.model_(X_t.to(DEVICE))
            proba = torch.softmax(logits, dim=1)
        return proba.cpu().numpy()

    def predict(self, X) -> np.ndarray:
        return np.argmax(self.predict_proba(X), axis=1)
