"""Window that displays pixel books and follows their live changes."""